"""Carry pre-rendered fragments through markdown conversion.

Each handler wraps its markdown in an envelope ``<div>`` whose id is a
unique placeholder key. After conversion the pipeline finds every envelope
by that key, hands it to the handler's transform and drops the wrapper.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Iterable

from .dom import DocumentTree, Node

logger = logging.getLogger(__name__)

ENVELOPE_CLASS = "sitelist-md-envelope"

Transform = Callable[[DocumentTree, Node], None]


class PipelineHandler:
    def __init__(self, name: str, markdown: str, transform: Transform):
        self.name = name
        self.markdown = markdown
        self.transform = transform
        self.key = f"{ENVELOPE_CLASS}-{uuid.uuid4().hex}"

    def fragment(self) -> str:
        # md_in_html renders the body as markdown and keeps id/class on the div
        return (
            f'<div id="{self.key}" class="{ENVELOPE_CLASS}" markdown="1">\n\n'
            f"{self.markdown.strip()}\n\n"
            "</div>"
        )


class MarkdownPipeline:
    def __init__(self, name: str, handlers: Iterable[PipelineHandler]):
        self.name = name
        self.handlers = list(handlers)
        keys = [handler.key for handler in self.handlers]
        if len(set(keys)) != len(keys):
            raise ValueError(f"Duplicate placeholder key in pipeline {name}")

    def markdown_after_body(self) -> str:
        return "\n\n".join(handler.fragment() for handler in self.handlers)

    def apply(self, doc: DocumentTree) -> list[str]:
        """Run each handler against its envelope; returns the names of handlers that ran."""
        applied: list[str] = []
        for handler in self.handlers:
            nodes = [
                node
                for node in doc.find_by_class(ENVELOPE_CLASS)
                if doc.get_attribute(node, "id") == handler.key
            ]
            if not nodes:
                logger.debug("%s: placeholder for %s not found, skipping", self.name, handler.name)
                continue
            node, duplicates = nodes[0], nodes[1:]
            handler.transform(doc, node)
            doc.remove_node(node)
            for duplicate in duplicates:
                logger.debug("%s: dropping duplicate placeholder for %s", self.name, handler.name)
                doc.remove_node(duplicate)
            applied.append(handler.name)
        return applied


def create_markdown_pipeline(name: str, handlers: Iterable[PipelineHandler]) -> MarkdownPipeline:
    return MarkdownPipeline(name, handlers)
