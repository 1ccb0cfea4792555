from __future__ import annotations

import re
from typing import Iterable

from awx_ee_pipeline.core.errors import ConfigError

from .models import SystemPackage

# `name [tag tag ...]`, where name may carry a version constraint
_LINE_RE = re.compile(r"^(?P<name>[^\[\]#]+?)\s*(?:\[(?P<tags>[^\[\]]*)\])?\s*$")


def _strip_comment(line: str) -> str:
    idx = line.find("#")
    return line if idx < 0 else line[:idx]


def parse_bindep_line(line: str, *, lineno: int | None = None) -> SystemPackage | None:
    """
    Parse one bindep line. Blank and comment-only lines return None.

      >>> parse_bindep_line("gcc [platform:rpm compile]")
      SystemPackage(name='gcc', tags=('platform:rpm', 'compile'))
    """
    body = _strip_comment(line).strip()
    if not body:
        return None

    m = _LINE_RE.match(body)
    if m is None:
        where = f" (line {lineno})" if lineno is not None else ""
        raise ConfigError(f"Malformed system package entry{where}: {line!r}")

    tags_raw = m.group("tags")
    tags = tuple(tags_raw.split()) if tags_raw else ()
    return SystemPackage(name=m.group("name").strip(), tags=tags)


def parse_bindep(text: str | Iterable[str]) -> tuple[SystemPackage, ...]:
    lines = text.splitlines() if isinstance(text, str) else list(text)
    out: list[SystemPackage] = []
    for n, line in enumerate(lines, start=1):
        pkg = parse_bindep_line(str(line), lineno=n)
        if pkg is not None:
            out.append(pkg)
    return tuple(out)


def render_bindep_line(pkg: SystemPackage) -> str:
    if not pkg.tags:
        return pkg.name
    return f"{pkg.name} [{' '.join(pkg.tags)}]"


def render_bindep(packages: Iterable[SystemPackage]) -> str:
    return "".join(render_bindep_line(p) + "\n" for p in packages)
