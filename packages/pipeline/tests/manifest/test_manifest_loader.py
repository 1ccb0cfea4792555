from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from awx_ee_pipeline.core import ConfigError
from awx_ee_pipeline.manifest import (
    dump_manifest,
    load_manifest,
    parse_manifest,
    write_manifest,
)

FIX = Path(__file__).parent.parent / "fixtures" / "execution-environment.yml"


def _raw() -> dict:
    return yaml.safe_load(FIX.read_text(encoding="utf-8"))


def test_load_fixture_manifest() -> None:
    m = load_manifest(FIX)
    assert m.version == 3
    assert m.base_image == "quay.io/centos/centos:stream9"

    deps = m.dependencies
    assert deps.python_interpreter is not None
    assert deps.python_interpreter.python_path == "/usr/bin/python3.11"
    assert deps.ansible_core is not None
    assert deps.ansible_core.package_pip == "ansible-core>=2.17,<2.20"

    names = [c.name for c in m.collections()]
    assert len(names) == 17
    assert names[0] == "awx.awx" and "kubevirt.core" in names
    azure = next(c for c in m.collections() if c.name == "azure.azcollection")
    assert azure.version == ">=2.1.0"
    prtg = next(c for c in m.collections() if c.name == "paessler.prtg")
    assert prtg.source is not None and prtg.source.startswith("git+https://gitlab.com/")

    pkgs = m.system_packages()
    assert len(pkgs) == 18
    gcc = next(p for p in pkgs if p.name == "gcc")
    assert gcc.tags == ("platform:rpm", "compile")
    assert gcc.platforms == ("rpm",) and gcc.profiles == ("compile",)
    svn = [p for p in pkgs if p.name == "subversion"]
    assert [p.platforms for p in svn] == [("rpm",), ("dpkg",)]

    assert deps.python is not None and deps.python.file == "requirements.txt"
    assert len(m.additional_build_steps.append_final) == 5
    assert m.additional_build_steps.append_base == ("RUN $PYCMD -m pip install -U pip",)


def test_python_requirements_read_from_referenced_file() -> None:
    m = load_manifest(FIX)
    reqs = m.python_requirements(FIX.parent)
    assert "pyvmomi" in reqs and "paramiko" in reqs
    assert not any(r.startswith("#") for r in reqs)


def test_platform_selection() -> None:
    system = load_manifest(FIX).dependencies.system
    assert system is not None
    dpkg = [p.name for p in system.for_platform("dpkg")]
    assert dpkg == ["subversion"]
    assert len(system.for_platform("rpm")) == 17


def test_round_trip_is_field_for_field_identical(tmp_path: Path) -> None:
    original = load_manifest(FIX)

    out = tmp_path / "ee.yml"
    write_manifest(out, original)
    again = load_manifest(out)
    assert again == original
    assert dump_manifest(again) == dump_manifest(original)


def test_inline_python_requirements_round_trip() -> None:
    raw = _raw()
    raw["dependencies"]["python"] = "pyvmomi\nrequests  # http\n\n# comment\n"
    m = parse_manifest(raw)
    assert m.dependencies.python is not None
    assert m.python_requirements(Path(".")) == ["pyvmomi", "requests"]
    assert parse_manifest(yaml.safe_load(dump_manifest(m))) == m


def test_missing_file_is_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_manifest(tmp_path / "nope.yml")


def test_invalid_yaml_is_config_error(tmp_path: Path) -> None:
    p = tmp_path / "bad.yml"
    p.write_text("version: 3\nimages: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="not valid YAML"):
        load_manifest(p)


@pytest.mark.parametrize(
    "mutate",
    [
        lambda r: r.pop("images"),
        lambda r: r.update(version=1),
        lambda r: r.update(surprise=True),
        lambda r: r["images"]["base_image"].pop("name"),
        lambda r: r["additional_build_steps"].update(append_sideways=["RUN true"]),
    ],
)
def test_wrong_shape_is_config_error(mutate) -> None:
    raw = _raw()
    mutate(raw)
    with pytest.raises(ConfigError):
        parse_manifest(raw)


def test_bad_galaxy_document_is_config_error() -> None:
    raw = _raw()
    raw["dependencies"]["galaxy"] = "---\ncollections:\n  - version: '1.0'\n"
    with pytest.raises(ConfigError, match="dependencies.galaxy"):
        parse_manifest(raw)


def test_malformed_system_line_is_config_error() -> None:
    raw = _raw()
    raw["dependencies"]["system"] = "gcc [platform:rpm\nmake\n"
    with pytest.raises(ConfigError, match="line 1"):
        parse_manifest(raw)


def test_single_line_inline_system_block() -> None:
    raw = _raw()
    raw["dependencies"]["system"] = "gcc [platform:rpm compile]\n"
    system = parse_manifest(raw).dependencies.system
    assert system is not None and system.file is None
    assert [p.name for p in system.packages] == ["gcc"]
    assert system.packages[0].tags == ("platform:rpm", "compile")


def test_single_line_without_newline_is_inline_when_tagged() -> None:
    raw = _raw()
    raw["dependencies"]["system"] = "gcc [platform:rpm]"
    raw["dependencies"]["python"] = "requests >=2.31"
    m = parse_manifest(raw)
    assert m.dependencies.system.file is None
    assert [p.name for p in m.dependencies.system.packages] == ["gcc"]
    assert m.dependencies.python.file is None
    assert m.python_requirements(Path(".")) == ["requests >=2.31"]


def test_single_token_is_a_file_reference() -> None:
    raw = _raw()
    raw["dependencies"]["system"] = "bindep.txt"
    m = parse_manifest(raw)
    assert m.dependencies.system.file == "bindep.txt"
    assert m.dependencies.system.packages == ()


def test_unquoted_galaxy_versions_keep_their_text() -> None:
    raw = _raw()
    raw["dependencies"]["galaxy"] = (
        "collections:\n"
        "  - name: community.general\n"
        "    version: 24.10\n"
        "  - name: kubernetes.core\n"
        "    version: 5\n"
    )
    m = parse_manifest(raw)
    versions = {c.name: c.version for c in m.collections()}
    assert versions == {"community.general": "24.10", "kubernetes.core": "5"}
    assert parse_manifest(yaml.safe_load(dump_manifest(m))) == m


def test_numeric_galaxy_version_in_mapping_form() -> None:
    raw = _raw()
    raw["dependencies"]["galaxy"] = {"collections": [{"name": "community.general", "version": 24.6}]}
    (coll,) = parse_manifest(raw).collections()
    assert coll.version == "24.6"
