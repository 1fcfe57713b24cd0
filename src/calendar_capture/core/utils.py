from __future__ import annotations

from typing import Optional
from urllib.parse import urljoin, urlparse

from bs4 import Tag


def is_http_url(url: str) -> bool:
    try:
        p = urlparse(url)
    except ValueError:
        return False
    return p.scheme in ("http", "https")


def absolutize(base: str, href: str) -> str:
    if not base:
        return href
    return urljoin(base, href)


def clean_text(value: Optional[str]) -> str:
    """Collapse whitespace runs to single spaces."""
    if not value:
        return ""
    return " ".join(value.split())


def class_string(tag: Tag) -> str:
    classes = tag.get("class") or []
    if isinstance(classes, str):
        return classes
    return " ".join(classes)


def has_class(tag: Tag, token: str) -> bool:
    return token in (tag.get("class") or [])


def is_hidden(tag: Tag) -> bool:
    """True when the tag or one of its ancestors is hidden by attribute or inline style."""
    node: Optional[Tag] = tag
    while node is not None and isinstance(node, Tag):
        if node.has_attr("hidden"):
            return True
        style = (node.get("style") or "").replace(" ", "").lower()
        if "display:none" in style:
            return True
        node = node.parent
    return False
