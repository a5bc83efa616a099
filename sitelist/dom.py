"""Document tree capabilities used by listing post-processing.

Everything downstream of the conversion engine talks to ``DocumentTree``;
``SoupDocument`` is the BeautifulSoup-backed implementation produced by
``engine.convert_markdown_file``.
"""

from __future__ import annotations

from typing import Any, Protocol

from bs4 import BeautifulSoup, NavigableString, Tag

Node = Any


class DocumentTree(Protocol):
    def get_element_by_id(self, element_id: str) -> Node | None: ...

    def find_by_class(self, class_name: str) -> list[Node]: ...

    def create_element(self, tag: str, attrs: dict[str, str] | None = None, text: str | None = None) -> Node: ...

    def append_child(self, parent: Node, child: Node) -> None: ...

    def remove_node(self, node: Node) -> None: ...

    def child_nodes(self, node: Node) -> list[Node]: ...

    def parent_node(self, node: Node) -> Node | None: ...

    def get_attribute(self, node: Node, name: str) -> str | None: ...

    def set_attribute(self, node: Node, name: str, value: str | None) -> None: ...

    def tag_name(self, node: Node) -> str: ...

    @property
    def title(self) -> str: ...

    def serialize(self) -> str: ...


class SoupDocument:
    def __init__(self, html: str | BeautifulSoup):
        self.soup = html if isinstance(html, BeautifulSoup) else BeautifulSoup(html, "html.parser")

    def get_element_by_id(self, element_id: str) -> Tag | None:
        return self.soup.find(id=element_id)

    def find_by_class(self, class_name: str) -> list[Tag]:
        return list(self.soup.find_all(class_=class_name))

    def create_element(self, tag: str, attrs: dict[str, str] | None = None, text: str | None = None) -> Tag:
        element = self.soup.new_tag(tag, attrs=dict(attrs or {}))
        if text is not None:
            element.string = text
        return element

    def append_child(self, parent: Tag, child: Tag | NavigableString) -> None:
        parent.append(child.extract() if child.parent is not None else child)

    def remove_node(self, node: Tag) -> None:
        node.decompose()

    def child_nodes(self, node: Tag) -> list[Tag | NavigableString]:
        return list(node.contents)

    def parent_node(self, node: Tag) -> Tag | None:
        return node.parent

    def get_attribute(self, node: Tag, name: str) -> str | None:
        value = node.get(name)
        if isinstance(value, list):
            return " ".join(value)
        return value

    def set_attribute(self, node: Tag, name: str, value: str | None) -> None:
        if value is None:
            del node[name]
        else:
            node[name] = value

    def tag_name(self, node: Tag) -> str:
        return node.name

    @property
    def title(self) -> str:
        title = self.soup.title
        if title is not None and title.string:
            return title.string.strip()
        heading = self.soup.find("h1")
        return heading.get_text(strip=True) if heading is not None else ""

    def serialize(self) -> str:
        return str(self.soup)
