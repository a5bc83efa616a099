from __future__ import annotations

from collections import Counter
from typing import Iterable

from .dom import DocumentTree, Node
from .listing import ListingDescriptor

MARGIN_SIDEBAR_ID = "margin-sidebar"


def category_counts(descriptors: Iterable[ListingDescriptor]) -> Counter:
    counts: Counter = Counter()
    for descriptor in descriptors:
        for item in descriptor.items:
            counts.update(set(item.categories))
    return counts


def category_sidebar(doc: DocumentTree, descriptors: Iterable[ListingDescriptor]) -> tuple[Node, Node]:
    counts = category_counts(descriptors)
    heading = doc.create_element("h5", {"class": "sitelist-listing-category-title"}, "Categories")
    container = doc.create_element("div", {"class": "sitelist-listing-categories"})
    for name, count in sorted(counts.items(), key=lambda x: (-x[1], x[0].lower())):
        entry = doc.create_element("div", {"class": "sitelist-listing-category", "data-category": name}, name)
        doc.append_child(entry, doc.create_element("span", {"class": "category-count"}, f"({count})"))
        doc.append_child(container, entry)
    return heading, container


def add_category_sidebar(doc: DocumentTree, descriptors: Iterable[ListingDescriptor]) -> bool:
    sidebar = doc.get_element_by_id(MARGIN_SIDEBAR_ID)
    if sidebar is None:
        return False
    heading, container = category_sidebar(doc, descriptors)
    doc.append_child(sidebar, heading)
    doc.append_child(sidebar, container)
    return True
