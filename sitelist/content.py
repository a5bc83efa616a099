from __future__ import annotations

import datetime as dt
import logging
import re
from pathlib import Path

import yaml

from .utils import as_list, parse_bool

logger = logging.getLogger(__name__)

LIST_MARKER_RE = re.compile(r"^(?P<indent>[ \t]*)(?:[-+*]|\d+[.)])\s+")
FENCE_RE = re.compile(r"^(?P<indent>[ \t]*)(`{3,}|~{3,})")
TAG_RE = re.compile(r"<[^>]+>")


def slugify(text: str) -> str:
    text = text.lower()
    text = re.sub(r"[^\w]+", "-", text, flags=re.UNICODE)
    text = text.strip("-_").replace("_", "-")
    return text or "item"


def strip_tags(html_text: str) -> str:
    return TAG_RE.sub("", html_text)


def split_front_matter(text: str) -> tuple[str, str]:
    clean_text = text.lstrip("\ufeff")
    lines = clean_text.splitlines()
    if not lines or lines[0].strip() != "---":
        return "", clean_text

    for i in range(1, len(lines)):
        if lines[i].strip() in {"---", "..."}:
            return "\n".join(lines[1:i]), "\n".join(lines[i + 1 :])
    return "", clean_text


def parse_front_matter(text: str, source: Path | None = None) -> tuple[dict, str]:
    raw, body = split_front_matter(text)
    if not raw.strip():
        return {}, body
    try:
        meta = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        logger.warning("Ignoring invalid front matter in %s: %s", source or "<string>", exc)
        return {}, body
    if not isinstance(meta, dict):
        return {}, body
    return {str(key).lower(): value for key, value in meta.items()}, body


def read_document(path: Path) -> tuple[dict, str]:
    return parse_front_matter(path.read_text(encoding="utf-8"), path)


def extract_title(meta: dict, body: str) -> tuple[str, str]:
    if meta.get("title"):
        return str(meta["title"]), body
    lines = body.splitlines()
    for i, line in enumerate(lines):
        stripped = line.strip()
        if stripped.startswith("# "):
            title = stripped[2:].strip() or "Untitled"
            new_body = "\n".join(lines[i + 1 :]).lstrip()
            return title, new_body
        if stripped:
            break
    return "Untitled", body


def _naive_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(dt.timezone.utc).replace(tzinfo=None)


def parse_date(meta: dict, file_path: Path) -> dt.datetime:
    value = meta.get("date")
    if isinstance(value, dt.datetime):
        return _naive_utc(value)
    if isinstance(value, dt.date):
        return dt.datetime.combine(value, dt.time())
    text = str(value or "").strip()
    if text:
        try:
            return _naive_utc(dt.datetime.fromisoformat(text))
        except ValueError:
            logger.debug("Unparseable date %r in %s, using mtime", text, file_path)
    return dt.datetime.fromtimestamp(file_path.stat().st_mtime)


def get_categories(meta: dict) -> list[str]:
    for key in ("categories", "category", "tags"):
        values = as_list(meta.get(key))
        if values:
            return values
    return []


def is_draft(meta: dict) -> bool:
    return parse_bool(meta.get("draft"))


def summarize(meta: dict, body: str, limit: int = 200) -> str:
    summary = meta.get("description") or meta.get("summary")
    if summary:
        return str(summary)
    for block in body.split("\n\n"):
        text = strip_tags(block).strip()
        if text and not text.startswith(("#", "```", "~~~", "|")):
            text = " ".join(text.split())
            return text[:limit] + ("..." if len(text) > limit else "")
    return ""


def normalize_list_spacing(text: str) -> str:
    lines = text.splitlines()
    out: list[str] = []
    in_fence = False
    fence_marker = ""
    for line in lines:
        fence_match = FENCE_RE.match(line)
        if fence_match:
            marker = fence_match.group(2)
            if not in_fence:
                in_fence = True
                fence_marker = marker
            elif marker == fence_marker:
                in_fence = False
                fence_marker = ""
            out.append(line)
            continue
        if in_fence:
            out.append(line)
            continue
        list_match = LIST_MARKER_RE.match(line)
        if list_match and not list_match.group("indent"):
            if out and out[-1].strip() and not LIST_MARKER_RE.match(out[-1]):
                out.append("")
        out.append(line)
    return "\n".join(out)
