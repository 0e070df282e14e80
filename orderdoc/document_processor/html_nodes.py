"""
BeautifulSoup implementation of the HtmlNode protocol.
"""
import logging
from typing import List, Optional

from bs4 import BeautifulSoup
from bs4.element import Tag

logger = logging.getLogger(__name__)

_ROW_GROUPS = ('thead', 'tbody', 'tfoot')
_CELL_TAGS = ('td', 'th')


def load_html(html: str) -> BeautifulSoup:
    """Parse an HTML document the way a browser would, closing implied end tags."""
    return BeautifulSoup(html or '', 'html5lib')


class SoupNode:
    """Wraps a bs4 Tag behind the HtmlNode protocol."""

    def __init__(self, element: Tag):
        self.element = element

    def __repr__(self):
        return f"SoupNode(<{self.tag}>)"

    def __eq__(self, other):
        return isinstance(other, SoupNode) and other.element is self.element

    def __hash__(self):
        return id(self.element)

    @property
    def tag(self) -> str:
        return (self.element.name or '').lower()

    def _children(self, names) -> List[Tag]:
        return [
            child for child in self.element.children
            if isinstance(child, Tag) and child.name in names
        ]

    def cells(self) -> List['SoupNode']:
        return [SoupNode(cell) for cell in self._children(_CELL_TAGS)]

    def rows(self) -> List['SoupNode']:
        rows = []
        for child in self.element.children:
            if not isinstance(child, Tag):
                continue
            if child.name == 'tr':
                rows.append(SoupNode(child))
            elif child.name in _ROW_GROUPS:
                rows.extend(SoupNode(row) for row in SoupNode(child)._children(('tr',)))
        return rows

    def attr(self, name: str) -> str:
        value = self.element.get(name)
        if value is None:
            return ''
        if isinstance(value, (list, tuple)):
            return ' '.join(value)
        return str(value)

    def has_class(self, name: str) -> bool:
        return name in (self.element.get('class') or [])

    def inner_html(self) -> str:
        return self.element.decode_contents()

    def text(self) -> str:
        return self.element.get_text(' ')

    def find_nested(self, tag: str) -> Optional['SoupNode']:
        found = self.element.find(tag)
        return SoupNode(found) if found is not None else None

    def find_all(self, tag: str) -> List['SoupNode']:
        return [SoupNode(found) for found in self.element.find_all(tag)]

    def select_one(self, selector: str) -> Optional['SoupNode']:
        found = self.element.select_one(selector)
        return SoupNode(found) if found is not None else None


def document_root(html: str) -> SoupNode:
    """Parse HTML and return the document wrapped as a node."""
    return SoupNode(load_html(html))
