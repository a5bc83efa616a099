from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

HIDDEN_GLOBS = ("**/.*", "**/.*/**")


@dataclass
class ResolvedGlobs:
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)


def _translate(pattern: str) -> str:
    out: list[str] = []
    i = 0
    n = len(pattern)
    while i < n:
        ch = pattern[i]
        if ch == "*":
            if pattern.startswith("**", i):
                i += 2
                if i < n and pattern[i] == "/":
                    # "**/" may also match zero directories
                    out.append("(?:.*/)?")
                    i += 1
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            end = pattern.find("]", i + 1)
            if end == -1:
                out.append(re.escape(ch))
            else:
                body = pattern[i + 1 : end]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append(f"[{body}]")
                i = end
        else:
            out.append(re.escape(ch))
        i += 1
    return "".join(out)


@lru_cache(maxsize=512)
def glob_to_regex(pattern: str) -> re.Pattern:
    pattern = pattern.strip().replace("\\", "/")
    if pattern.startswith("./"):
        pattern = pattern[2:]
    if pattern.endswith("/"):
        pattern = pattern + "**"
    if "/" not in pattern.rstrip("/"):
        pattern = "**/" + pattern
    return re.compile(f"^{_translate(pattern.lstrip('/'))}$")


def split_globs(globs: list[str]) -> tuple[list[str], list[str]]:
    includes: list[str] = []
    excludes: list[str] = []
    for glob in globs:
        if glob.startswith("!"):
            excludes.append(glob[1:])
        else:
            includes.append(glob)
    return includes, excludes


def relative_posix(root: Path, file: str | Path) -> str:
    path = Path(file)
    if path.is_absolute():
        try:
            return path.relative_to(root).as_posix()
        except ValueError:
            return path.as_posix()
    return path.as_posix().removeprefix("./")


def matches_any(rel_path: str, globs: list[str]) -> bool:
    return any(glob_to_regex(glob).match(rel_path) for glob in globs)


def filter_paths(root: Path, files: list[str | Path], globs: list[str]) -> ResolvedGlobs:
    includes, excludes = split_globs(globs)
    result = ResolvedGlobs()
    for file in files:
        rel = relative_posix(root, file)
        if not matches_any(rel, includes):
            continue
        if excludes and matches_any(rel, excludes):
            result.exclude.append(rel)
        else:
            result.include.append(rel)
    return result


def list_files(root: Path) -> list[Path]:
    if not root.exists():
        return []
    return [path for path in root.rglob("*") if path.is_file()]


def resolve_path_globs(root: Path, globs: list[str], ignore: list[str] | None = None) -> ResolvedGlobs:
    ignore_globs = list(HIDDEN_GLOBS) + list(ignore or [])
    candidates = [
        rel
        for rel in (path.relative_to(root).as_posix() for path in list_files(root))
        if not matches_any(rel, ignore_globs)
    ]
    resolved = filter_paths(root, candidates, globs)
    resolved.include.sort()
    return resolved
