from __future__ import annotations

import html
import logging
from pathlib import Path

import markdown

from .dom import SoupDocument
from .preserve import remove_and_preserve_html, restore_preserved_html
from .render import render_template

logger = logging.getLogger(__name__)

MARKDOWN_EXTENSIONS = ["md_in_html", "fenced_code", "tables", "toc", "attr_list", "codehilite"]
EXTENSION_CONFIGS = {"codehilite": {"guess_lang": False, "css_class": "codehilite"}}


class ConversionError(RuntimeError):
    """Raised when a markdown document cannot be converted."""


def convert_markdown(text: str) -> str:
    text, preserve = remove_and_preserve_html(text)
    md = markdown.Markdown(extensions=MARKDOWN_EXTENSIONS, extension_configs=EXTENSION_CONFIGS, output_format="html")
    return restore_preserved_html(md.convert(text), preserve)


def convert_markdown_file(path: Path, page_template: str, title: str = "", head: str = "") -> SoupDocument:
    try:
        text = path.read_text(encoding="utf-8")
        body = convert_markdown(text)
    except Exception as exc:
        raise ConversionError(f"Conversion of {path} failed: {exc}") from exc
    page = render_template(
        page_template,
        title=html.escape(title),
        head=head,
        content=body,
    )
    logger.debug("Converted %s (%d bytes of html)", path, len(page))
    return SoupDocument(page)
