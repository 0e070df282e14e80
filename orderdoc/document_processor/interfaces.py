"""
Interface definitions for the order document processor.

This module defines the narrow view of an HTML tree that the row classifier
needs, plus the exception types raised by the parsing components. Keeping the
classifier behind this protocol means its heuristics can be exercised without
caring which HTML library produced the nodes.
"""

from typing import List, Optional, Protocol, runtime_checkable


class OrderDocumentError(Exception):
    """Base class for order document parsing errors."""
    pass


class OrderTableNotFoundError(OrderDocumentError):
    """Raised when no order items table can be located in the document."""

    def __init__(self, message: str = 'Order Items Table not found'):
        super().__init__(message)


class AddendumParseError(OrderDocumentError):
    """Raised when an addendum view page cannot be parsed into items."""
    pass


class SourceError(OrderDocumentError):
    """Raised when a document source (email file, view link) cannot be read."""
    pass


@runtime_checkable
class HtmlNode(Protocol):
    """Protocol for the subset of an element the parser reads."""

    @property
    def tag(self) -> str:
        """Lowercase tag name."""
        ...

    def cells(self) -> List['HtmlNode']:
        """
        Direct cell children of a row.

        Returns:
            td/th children only; cells of nested tables are excluded
        """
        ...

    def rows(self) -> List['HtmlNode']:
        """
        Direct rows of a table, looking through thead/tbody/tfoot.

        Returns:
            tr elements that belong to this table and not to a nested one
        """
        ...

    def attr(self, name: str) -> str:
        """
        Attribute value, '' when absent.

        Multi-valued attributes such as class are joined with spaces.
        """
        ...

    def has_class(self, name: str) -> bool:
        """Check whether the element carries a CSS class."""
        ...

    def inner_html(self) -> str:
        """Serialized markup of the element's children."""
        ...

    def text(self) -> str:
        """Text content with a space between adjacent text fragments."""
        ...

    def find_nested(self, tag: str) -> Optional['HtmlNode']:
        """First descendant element with the given tag, or None."""
        ...

    def find_all(self, tag: str) -> List['HtmlNode']:
        """All descendant elements with the given tag, in document order."""
        ...
