from __future__ import annotations

import logging
import os
import posixpath
from pathlib import Path
from typing import TYPE_CHECKING

from .content import extract_title, get_categories, is_draft, parse_date, read_document, summarize
from .globs import matches_any, resolve_path_globs
from .listing import (
    Listing,
    ListingDescriptor,
    ListingFeedOptions,
    ListingItem,
    ListingSharedOptions,
    ListingType,
)
from .utils import as_list, parse_bool, parse_int

if TYPE_CHECKING:
    from .project import Format, ProjectContext

logger = logging.getLogger(__name__)

DEFAULT_FIELDS = ("date", "title", "description", "categories")
ITEM_META_KEYS = {"title", "date", "description", "summary", "categories", "category", "tags", "draft", "listing"}


def listing_entries(raw: object) -> list[dict]:
    if raw is None or raw is False:
        return []
    if isinstance(raw, (str, dict)):
        raw = [raw]
    if not isinstance(raw, list):
        logger.warning("Ignoring listing metadata of type %s", type(raw).__name__)
        return []
    entries: list[dict] = []
    for entry in raw:
        if isinstance(entry, str):
            entries.append({"contents": entry})
        elif isinstance(entry, dict):
            entries.append({str(key).lower().replace("_", "-"): value for key, value in entry.items()})
    return entries


def _directory_glob(root: Path | None, pattern: str) -> str | None:
    if root is None or any(ch in pattern for ch in "*?[") or not (root / pattern).is_dir():
        return None
    return pattern.rstrip("/") + "/**"


def resolve_contents(page_dir: str, globs: list[str], root: Path | None = None) -> tuple[str, ...]:
    """Make content globs project relative; globs are written relative to the listing page.

    With ``root`` given, an entry naming an existing directory lists everything below it.
    """
    resolved: list[str] = []
    for glob in globs:
        negate = glob.startswith("!")
        pattern = glob[1:] if negate else glob
        rooted = pattern.startswith("/")
        directory = _directory_glob(
            root, pattern.lstrip("/") if rooted else posixpath.normpath(posixpath.join(page_dir, pattern))
        )
        if directory:
            pattern = directory
        elif rooted:
            pattern = pattern.lstrip("/")
        elif page_dir and "/" not in pattern:
            # bare names match at any depth below the page
            pattern = f"{page_dir}/**/{pattern}"
        elif page_dir:
            pattern = posixpath.normpath(posixpath.join(page_dir, pattern)) + ("/" if pattern.endswith("/") else "")
        resolved.append(("!" if negate else "") + pattern)
    return tuple(resolved)


def resolve_listing(entry: dict, index: int, source: Path, page_dir: str, root: Path | None = None) -> Listing:
    listing_id = str(entry.get("id") or ("listing" if index == 0 else f"listing-{index + 1}"))
    contents = as_list(entry.get("contents")) or ["*"]
    template = entry.get("template")
    max_items = entry.get("max-items")
    return Listing(
        id=listing_id,
        type=ListingType.from_value(entry.get("type")),
        contents=resolve_contents(page_dir, contents, root),
        template=(source.parent / str(template)) if template else None,
        fields=tuple(as_list(entry.get("fields"))) or DEFAULT_FIELDS,
        categories=parse_bool(entry.get("categories")),
        sort=str(entry.get("sort") or "date desc"),
        max_items=parse_int(max_items, 0) if max_items is not None else None,
        page_size=parse_int(entry.get("page-size"), 20),
        feed=ListingFeedOptions.from_metadata(entry.get("feed")),
    )


def read_item(project: ProjectContext, source: Path, rel_path: str, fmt: Format) -> ListingItem | None:
    path = project.dir / rel_path
    meta, body = read_document(path)
    if is_draft(meta):
        return None
    title, body = extract_title(meta, body)
    href = os.path.relpath(project.output_path(path, fmt), project.output_path(source, fmt).parent)
    return ListingItem(
        title=title,
        path=rel_path,
        href=Path(href).as_posix(),
        date=parse_date(meta, path),
        description=summarize(meta, body),
        categories=tuple(get_categories(meta)),
        fields={key: value for key, value in meta.items() if key not in ITEM_META_KEYS},
    )


def sort_items(items: list[ListingItem], sort: str) -> list[ListingItem]:
    key, _, direction = sort.strip().lower().partition(" ")
    reverse = direction.strip() == "desc"
    if key == "title":
        return sorted(items, key=lambda item: item.title.lower(), reverse=reverse)
    if key == "date":
        return sorted(items, key=lambda item: (item.date is not None, item.date), reverse=reverse)
    return sorted(items, key=lambda item: str(item.fields.get(key, "")), reverse=reverse)


def read_listing_items(project: ProjectContext, source: Path, listing: Listing, fmt: Format) -> tuple[ListingItem, ...]:
    ignore = [project.relative(project.output_dir) + "/**", project.relative(project.cache_dir) + "/**"]
    renderable = list(project.config.get("render") or [])
    source_rel = project.relative(source)
    items: list[ListingItem] = []
    for rel_path in resolve_path_globs(project.dir, list(listing.contents), ignore).include:
        if rel_path == source_rel or (renderable and not matches_any(rel_path, renderable)):
            continue
        item = read_item(project, source, rel_path, fmt)
        if item is not None:
            items.append(item)
    items = sort_items(items, listing.sort)
    if listing.max_items is not None:
        items = items[: listing.max_items]
    return tuple(items)


def read_listings(
    source: Path, project: ProjectContext, fmt: Format
) -> tuple[list[ListingDescriptor], ListingSharedOptions]:
    meta, _ = read_document(source)
    entries = listing_entries(meta.get("listing"))
    if not entries:
        return [], ListingSharedOptions()

    source_rel = project.relative(source)
    page_dir = posixpath.dirname(source_rel)
    descriptors: list[ListingDescriptor] = []
    for index, entry in enumerate(entries):
        listing = resolve_listing(entry, index, source, page_dir, project.dir)
        items = read_listing_items(project, source, listing, fmt)
        descriptors.append(ListingDescriptor(listing=listing, items=items, source=source_rel))
        logger.debug("Listing %s in %s: %d item(s)", listing.id, source_rel, len(items))

    feed = next((d.listing.feed for d in descriptors if d.listing.feed is not None), None)
    options = ListingSharedOptions(
        categories=any(d.listing.categories for d in descriptors),
        feed=feed,
    )
    return descriptors, options
