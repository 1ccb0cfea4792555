from __future__ import annotations

import json
import textwrap

from awx_ee_pipeline.containers import ContainerEngine, Volume
from awx_ee_pipeline.core import scratch_dir
from awx_ee_pipeline.pipeline.types import PipelineOptions

from .types import CheckResult, FunctionalCheck

_RESULT_PREFIX = "RESULT "

# Runs inside the image: python -c IMPORT_PROBE '<json pairs>'
IMPORT_PROBE = textwrap.dedent(
    """\
    import json, sys
    pairs = json.loads(sys.argv[1])
    failed = []
    for dist, mod in pairs:
        try:
            __import__(mod)
            print(f"OK {dist} (import {mod})")
        except ImportError as e:
            print(f"FAILED {dist} (import {mod}): {e}")
            failed.append(dist)
    print("RESULT " + json.dumps({"failed": failed}))
    sys.exit(1 if failed else 0)
    """
)

SAMPLE_PLAYBOOK = textwrap.dedent(
    """\
    ---
    - name: Test AWX EE functionality
      hosts: localhost
      gather_facts: true
      tasks:
        - name: Test debug output
          ansible.builtin.debug:
            msg: "AWX EE is working correctly"

        - name: Test that collections are available
          ansible.builtin.debug:
            msg: "Testing collection availability"

        - name: Verify Python version
          ansible.builtin.debug:
            var: ansible_python_version
    """
)


def check_ansible_version(engine: ContainerEngine, image: str, _: PipelineOptions) -> CheckResult:
    res = engine.run(image, ["ansible", "--version"])
    return CheckResult(
        check_id="ansible-version",
        title="ansible --version",
        hard=True,
        passed=res.ok,
        output=res.output,
        message="Ansible is working" if res.ok else f"ansible --version exited {res.exit_code}",
    )


def check_python_version(engine: ContainerEngine, image: str, _: PipelineOptions) -> CheckResult:
    res = engine.run(image, ["python", "--version"])
    version = res.output.strip()
    return CheckResult(
        check_id="python-version",
        title="python --version",
        hard=False,
        passed=res.ok,
        output=res.output,
        message=f"Python version: {version}" if res.ok else f"python --version exited {res.exit_code}",
        warnings=() if res.ok else (f"python --version failed: {res.tail(5)}",),
        details={"version": version} if res.ok else {},
    )


def check_collection_list(engine: ContainerEngine, image: str, _: PipelineOptions) -> CheckResult:
    res = engine.run(image, ["ansible-galaxy", "collection", "list"])
    return CheckResult(
        check_id="collection-list",
        title="ansible-galaxy collection list",
        hard=True,
        passed=res.ok,
        output=res.output,
        message="Collections are installed" if res.ok else f"collection list exited {res.exit_code}",
    )


def installed_collections(listing: str) -> set[str]:
    """
    Collection names from `ansible-galaxy collection list` output.

      # /usr/share/ansible/collections/ansible_collections
      Collection        Version
      ----------------- -------
      amazon.aws        8.1.0
    """
    found: set[str] = set()
    for line in listing.splitlines():
        s = line.strip()
        if not s or s.startswith("#") or s.startswith("-"):
            continue
        name = s.split()[0]
        if "." in name and name != "Collection":
            found.add(name)
    return found


def check_key_collections(engine: ContainerEngine, image: str, opts: PipelineOptions) -> CheckResult:
    res = engine.run(image, ["ansible-galaxy", "collection", "list"])
    present = installed_collections(res.stdout) if res.ok else set()
    missing = [c for c in opts.key_collections if c not in present]
    found = [c for c in opts.key_collections if c in present]
    return CheckResult(
        check_id="key-collections",
        title="expected collections present",
        hard=False,
        passed=not missing,
        output=res.output,
        message=f"{len(found)}/{len(opts.key_collections)} expected collections found",
        warnings=tuple(f"Collection not found: {c}" for c in missing),
        details={"found": found, "missing": missing},
    )


def parse_import_probe(output: str) -> list[str] | None:
    for line in reversed(output.splitlines()):
        if line.startswith(_RESULT_PREFIX):
            try:
                data = json.loads(line[len(_RESULT_PREFIX):])
            except json.JSONDecodeError:
                return None
            failed = data.get("failed")
            return [str(x) for x in failed] if isinstance(failed, list) else None
    return None


def check_python_imports(engine: ContainerEngine, image: str, opts: PipelineOptions) -> CheckResult:
    pairs = [list(p) for p in opts.python_packages]
    res = engine.run(image, ["python", "-c", IMPORT_PROBE, json.dumps(pairs)])

    failed = parse_import_probe(res.stdout)
    if failed is None:
        # probe never reported; nothing can be vouched for
        failed = [dist for dist, _ in opts.python_packages]
    passed = res.ok and not failed

    return CheckResult(
        check_id="python-imports",
        title="python package imports",
        hard=True,
        passed=passed,
        output=res.output,
        message=(
            "All critical packages available"
            if passed
            else f"Failed packages: {failed}"
        ),
        details={"failed_packages": failed},
    )


def check_sample_playbook(engine: ContainerEngine, image: str, _: PipelineOptions) -> CheckResult:
    with scratch_dir("awx-ee-test-") as d:
        playbook = d / "test.yml"
        playbook.write_text(SAMPLE_PLAYBOOK, encoding="utf-8")
        res = engine.run(
            image,
            ["ansible-playbook", str(playbook)],
            volumes=[Volume(host=d, container=d)],
        )
    return CheckResult(
        check_id="sample-playbook",
        title="sample playbook run",
        hard=True,
        passed=res.ok,
        output=res.output,
        message=(
            "Sample playbook executed successfully"
            if res.ok
            else f"ansible-playbook exited {res.exit_code}"
        ),
    )


CHECKS: tuple[FunctionalCheck, ...] = (
    FunctionalCheck("ansible-version", "ansible --version", True, check_ansible_version),
    FunctionalCheck("python-version", "python --version", False, check_python_version),
    FunctionalCheck("collection-list", "ansible-galaxy collection list", True, check_collection_list),
    FunctionalCheck("key-collections", "expected collections present", False, check_key_collections),
    FunctionalCheck("python-imports", "python package imports", True, check_python_imports),
    FunctionalCheck("sample-playbook", "sample playbook run", True, check_sample_playbook),
)
