from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Sequence

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateError, Undefined

from .dom import DocumentTree, Node
from .listing import Listing, ListingItem
from .pipeline import PipelineHandler

logger = logging.getLogger(__name__)

LISTING_CLASS = "sitelist-listing"
CONTAINER_TAGS = {"div", "section", "article", "main", "aside"}


class ListingTemplateError(RuntimeError):
    """Raised when a listing template fails to render."""


def _environment(template_dir: Path, bundled: bool) -> Environment:
    env = Environment(
        loader=FileSystemLoader(str(template_dir)),
        autoescape=False,
        keep_trailing_newline=True,
        undefined=StrictUndefined if bundled else Undefined,
    )
    if bundled:
        env.filters["category_attr"] = lambda values: json.dumps(list(values), ensure_ascii=False)
        env.filters["cell"] = lambda value: str(value).replace("|", "\\|").replace("\n", " ")
    return env


def render_listing_markdown(
    template_path: Path,
    listing: Listing,
    items: Sequence[ListingItem],
    format_name: str,
    bundled: bool,
) -> str:
    env = _environment(template_path.parent, bundled)
    context = {
        "listing": listing,
        "items": [item.as_template_context() for item in items],
        "format": format_name,
    }
    if bundled:
        context["fields"] = list(listing.fields)
        context["options"] = listing.client_options()
    try:
        return env.get_template(template_path.name).render(**context)
    except TemplateError as exc:
        raise ListingTemplateError(f"Listing {listing.id}: template {template_path} failed: {exc}") from exc


def _listing_container(doc: DocumentTree, listing: Listing, envelope: Node) -> Node | None:
    target = doc.get_element_by_id(listing.id)
    if target is not None:
        if doc.tag_name(target) in CONTAINER_TAGS:
            return target
        # toc gives headings slug ids; the listing keeps its own id
        renamed = f"{listing.id}-{doc.tag_name(target)}"
        logger.debug("Element <%s id=%s> renamed to %s for listing", doc.tag_name(target), listing.id, renamed)
        doc.set_attribute(target, "id", renamed)
    parent = doc.parent_node(envelope)
    if parent is None:
        return None
    target = doc.create_element("div", {"id": listing.id, "class": LISTING_CLASS})
    doc.append_child(parent, target)
    return target


def template_markdown_handler(
    template_path: Path,
    listing: Listing,
    items: Sequence[ListingItem],
    format_name: str,
    bundled: bool,
) -> PipelineHandler:
    markdown = render_listing_markdown(template_path, listing, items, format_name, bundled)

    def transform(doc: DocumentTree, envelope: Node) -> None:
        target = _listing_container(doc, listing, envelope)
        if target is None:
            logger.debug("No container for listing %s", listing.id)
            return
        for child in doc.child_nodes(envelope):
            doc.append_child(target, child)

    return PipelineHandler(f"listing-{listing.id}", markdown, transform)


def template_js_script(listing_id: str, listing: Listing, item_count: int) -> str:
    payload = {
        "id": listing_id,
        "options": listing.client_options(),
        "itemCount": item_count,
    }
    return (
        "window.document.addEventListener(\"DOMContentLoaded\", function (_event) {\n"
        f"  window.sitelistListings = window.sitelistListings || {{}};\n"
        f"  window.sitelistListings[{json.dumps(listing_id)}] = {json.dumps(payload, ensure_ascii=False)};\n"
        "});\n"
    )
