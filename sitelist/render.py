from __future__ import annotations

import html
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)


def render_template(template: str, **context: str) -> str:
    output = template
    late_keys = {"content", "head"}
    for key, value in context.items():
        if key in late_keys:
            continue
        output = output.replace(f"{{{{{key}}}}}", value)
    for key in late_keys:
        if key in context:
            output = output.replace(f"{{{{{key}}}}}", context[key])
    return output


def read_template(path: Path) -> str:
    return path.read_text(encoding="utf-8")


def write_text(path: Path, text: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")


@dataclass
class RenderResult:
    input: Path
    output: Path
    supporting: list[Path] = field(default_factory=list)
    resources: list[Path] = field(default_factory=list)


def _href(target: Path, page_dir: Path) -> str:
    return Path(os.path.relpath(target, page_dir)).as_posix()


def build_head(extras, output: Path, lib_dir: Path, self_contained: bool) -> tuple[str, list[Path]]:
    """Head markup for a page's dependencies; returns (html, files copied under lib_dir)."""
    parts: list[str] = []
    copied: list[Path] = []

    def stylesheet(path: Path, name: str, dependency: str) -> None:
        if self_contained:
            parts.append(f"<style>\n{path.read_text(encoding='utf-8')}\n</style>")
            return
        dest = lib_dir / dependency / name
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(path, dest)
        copied.append(dest)
        parts.append(f'<link rel="stylesheet" href="{html.escape(_href(dest, output.parent))}">')

    for bundle in extras.style_bundles:
        stylesheet(bundle.path, bundle.name, bundle.dependency)
    for dependency in extras.dependencies:
        for sheet in dependency.stylesheets:
            stylesheet(sheet.path, sheet.name, dependency.name)
        for script in dependency.scripts:
            if self_contained:
                parts.append(f"<script>\n{script.path.read_text(encoding='utf-8')}\n</script>")
                continue
            dest = lib_dir / dependency.name / script.name
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copy2(script.path, dest)
            copied.append(dest)
            parts.append(f'<script src="{html.escape(_href(dest, output.parent))}"></script>')
    for include in extras.include_in_header:
        parts.append(include.read_text(encoding="utf-8"))
    return "\n".join(parts), copied


def cleanup(self_contained: bool, supporting: Sequence[Path]) -> None:
    if not self_contained:
        return
    for path in supporting:
        if path.is_dir():
            shutil.rmtree(path, ignore_errors=True)
        elif path.exists():
            path.unlink()
            logger.debug("Removed supporting file %s", path)
