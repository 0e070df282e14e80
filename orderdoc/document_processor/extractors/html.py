"""
HTML order items extractor module.

Locates the order items table in an order confirmation and folds the row
classifier over its rows to produce the ordered item list.
"""
import logging
from typing import Any, Dict, List, Optional

from orderdoc.document_processor.classifier import (
    ADDENDUM_AMOUNT_MAX,
    ADDENDUM_AMOUNT_MIN,
    CategoryState,
    RowKind,
    classify_and_process,
    is_column_header,
)
from orderdoc.document_processor.html_nodes import SoupNode, document_root
from orderdoc.document_processor.interfaces import HtmlNode, OrderTableNotFoundError
from orderdoc.document_processor.models import OrderItem

logger = logging.getLogger(__name__)

LEGACY_TABLE_SELECTOR = 'table.pos'


def has_column_header(table: HtmlNode) -> bool:
    """
    Check whether a table contains the DESCRIPTION / QTY / EXTENDED header row.

    Args:
        table: Table node

    Returns:
        True if any row's first three cells carry the header labels
    """
    for row in table.find_all('tr'):
        cells = row.cells()
        if len(cells) >= 3 and is_column_header(cells[0].text(), cells[1].text(), cells[2].text()):
            return True
    return False


def locate_order_table(root: SoupNode, selector: str = LEGACY_TABLE_SELECTOR) -> Optional[HtmlNode]:
    """
    Find the table holding the order line items.

    The legacy class selector is tried first; otherwise the first table
    (in document order) containing the column header row is used.

    Args:
        root: Parsed document
        selector: CSS selector of the legacy order table

    Returns:
        Table node, or None if neither strategy finds one
    """
    table = root.select_one(selector) if selector else None
    if table is not None:
        return table

    for candidate in root.find_all('table'):
        if has_column_header(candidate):
            logger.debug("Order table located by column header row")
            return candidate
    return None


class OrderItemsExtractor:
    """
    Extracts the hierarchical order item list from an order document's HTML.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """
        Initialize the extractor.

        Args:
            config: Optional ``parser`` configuration section
        """
        self.config = config or {}
        self.table_selector = self.config.get('legacy_table_selector', LEGACY_TABLE_SELECTOR)
        self.addendum_amount_min = float(self.config.get('addendum_amount_min', ADDENDUM_AMOUNT_MIN))
        self.addendum_amount_max = float(self.config.get('addendum_amount_max', ADDENDUM_AMOUNT_MAX))
        self.log_dropped_rows = self.config.get('log_dropped_rows', True)

    def extract_items(self, html: str) -> List[OrderItem]:
        """
        Extract order items from HTML.

        Args:
            html: HTML body of the order document

        Returns:
            Main categories, subcategories and line items in document order

        Raises:
            OrderTableNotFoundError: If no order items table exists
        """
        root = document_root(html)
        table = locate_order_table(root, self.table_selector)
        if table is None:
            raise OrderTableNotFoundError()

        # Direct rows only: nested progress-payment rows are read by the
        # nested-table rule, never as rows of this table.
        rows = table.rows()
        return self.process_rows(rows)

    def process_rows(self, rows: List[HtmlNode]) -> List[OrderItem]:
        """
        Fold the row classifier over an ordered row list.

        Args:
            rows: Rows of the order table

        Returns:
            Emitted order items
        """
        items: List[OrderItem] = []
        state = CategoryState()
        dropped = 0
        scanned = 0

        for index, row in enumerate(rows):
            next_row = rows[index + 1] if index + 1 < len(rows) else None
            step = classify_and_process(
                row,
                state,
                next_row,
                addendum_amount_min=self.addendum_amount_min,
                addendum_amount_max=self.addendum_amount_max,
            )
            scanned += 1
            state = step.state
            items.extend(step.items)

            if step.dropped:
                dropped += 1
                if self.log_dropped_rows:
                    logger.debug(f"Dropped unrecognized row {index}: {row.text().strip()[:80]!r}")

            if step.stop:
                if step.kind == RowKind.NESTED_TABLE:
                    logger.info(f"Progress payments table reached at row {index}; "
                                f"{len(step.items) // 2} addendum(s) extracted")
                break

        logger.info(f"Scanned {scanned} of {len(rows)} rows: {len(items)} items, {dropped} unrecognized")
        return items


def extract_order_items(html: str, config: Optional[Dict[str, Any]] = None) -> List[OrderItem]:
    """
    Extract the order item list from an order document's HTML.

    Args:
        html: HTML body of the order document
        config: Optional ``parser`` configuration section

    Returns:
        Ordered list of MainCategory, Subcategory and LineItem values

    Raises:
        OrderTableNotFoundError: If no order items table exists
    """
    return OrderItemsExtractor(config).extract_items(html)
