from __future__ import annotations

import datetime as dt
import html
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from .content import slugify
from .dom import DocumentTree
from .listing import FEED_PARTIAL, ListingDescriptor, ListingFeedOptions, ListingItem
from .utils import join_url, parse_int, rfc822_date

if TYPE_CHECKING:
    from .project import Format, ProjectContext

logger = logging.getLogger(__name__)

FEED_LIMIT = 20


def feed_items(
    descriptors: Sequence[ListingDescriptor], limit: int, category: str | None = None
) -> list[ListingItem]:
    seen: set[str] = set()
    items: list[ListingItem] = []
    for descriptor in descriptors:
        for item in descriptor.items:
            if item.path in seen or (category is not None and category not in item.categories):
                continue
            seen.add(item.path)
            items.append(item)
    items.sort(key=lambda item: item.date or dt.datetime.min, reverse=True)
    return items[:limit]


def _item_link(project: ProjectContext, item: ListingItem, fmt: Format, site_url: str, page_dir: Path) -> str:
    output = project.output_path(project.dir / item.path, fmt)
    if site_url:
        return join_url(site_url, output.relative_to(project.output_dir).as_posix())
    return Path(os.path.relpath(output, page_dir)).as_posix()


def render_rss(
    title: str,
    link: str,
    description: str,
    entries: list[tuple[ListingItem, str]],
) -> str:
    rows = []
    for item, item_link in entries:
        lines = [
            "<item>",
            f"<title>{html.escape(item.title)}</title>",
            f"<link>{html.escape(item_link)}</link>",
            f"<guid>{html.escape(item_link)}</guid>",
        ]
        if item.date is not None:
            lines.append(f"<pubDate>{rfc822_date(item.date)}</pubDate>")
        lines.append(f"<description>{html.escape(item.description)}</description>")
        lines.extend(f"<category>{html.escape(category)}</category>" for category in item.categories)
        lines.append("</item>")
        rows.append("\n".join(lines))
    dates = [item.date for item, _ in entries if item.date is not None]
    last_build = rfc822_date(max(dates)) if dates else rfc822_date(dt.datetime.now(dt.timezone.utc))
    return "\n".join(
        [
            '<?xml version="1.0" encoding="UTF-8"?>',
            '<rss version="2.0">',
            "<channel>",
            f"<title>{html.escape(title)}</title>",
            f"<link>{html.escape(link)}</link>",
            f"<description>{html.escape(description)}</description>",
            f"<lastBuildDate>{last_build}</lastBuildDate>",
            "\n".join(rows),
            "</channel>",
            "</rss>",
            "",
        ]
    )


def create_feed(
    doc: DocumentTree,
    source: Path,
    project: ProjectContext,
    descriptors: Sequence[ListingDescriptor],
    options: ListingFeedOptions,
    fmt: Format,
) -> list[Path]:
    """Write RSS feeds for a listing page and return their paths.

    Only partial feeds (item summaries, no rendered bodies) are produced;
    a requested ``full`` type is downgraded.
    """
    if options.type != FEED_PARTIAL:
        logger.debug("Feed type %r requested for %s, writing a partial feed", options.type, source)
        options = replace(options, type=FEED_PARTIAL)

    limit = options.items if options.items is not None else parse_int(project.config.get("feed_limit"), FEED_LIMIT)
    site_url = str(project.config.get("site_url") or "").strip()
    page_output = project.output_path(source, fmt)
    page_link = (
        join_url(site_url, page_output.relative_to(project.output_dir).as_posix()) if site_url else page_output.name
    )
    title = options.title or doc.title or str(project.config.get("site_name") or "")
    description = options.description or str(project.config.get("site_description") or "") or title

    def write_feed(path: Path, feed_title: str, items: list[ListingItem]) -> Path:
        entries = [(item, _item_link(project, item, fmt, site_url, page_output.parent)) for item in items]
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(render_rss(feed_title, page_link, description, entries), encoding="utf-8")
        logger.info("Feed written: %s (%d items)", path, len(entries))
        return path

    feed_paths = [write_feed(page_output.with_suffix(".xml"), title, feed_items(descriptors, limit))]
    for category in options.categories:
        category_items = feed_items(descriptors, limit, category)
        category_path = page_output.with_name(f"{page_output.stem}-{slugify(category)}.xml")
        feed_paths.append(write_feed(category_path, f"{title} - {category}", category_items))
    return feed_paths
