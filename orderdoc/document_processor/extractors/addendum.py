"""
Addendum page extractor module.

An addendum's partner view page lists only the changed lines. Its table
follows the order confirmation layout, but main-category rows are context
only (the addendum is filed under its own category by the caller), and
extended amounts may be negative for credits and returns.
"""
import re
import logging
from typing import Any, Dict, List, Optional

import requests

from orderdoc.document_processor.classifier import (
    CategoryState,
    amount_cell,
    cell_text,
    is_column_header,
    is_legacy_category_markup,
    is_summary_text,
    line_item_description,
    matches_category_code,
)
from orderdoc.document_processor.html_nodes import document_root
from orderdoc.document_processor.interfaces import AddendumParseError, HtmlNode, OrderDocumentError
from orderdoc.document_processor.models import AddendumData, LineItem, OrderItem, Subcategory
from orderdoc.document_processor.sources import (
    DEFAULT_TIMEOUT,
    extract_view_id,
    fetch_view_html,
    validate_view_url,
)
from orderdoc.utils.common import clean_text, compute_rate, extract_quantity, parse_amount

logger = logging.getLogger(__name__)

_PAGE_ADDENDUM_RE = re.compile(r'Addendum\s*#\s*:?\s*(\d+)', re.IGNORECASE)
_SUBCATEGORY_CLASSES = ('ssg_title', 'subcategory')


def _is_subcategory_row(row: HtmlNode, first: HtmlNode) -> bool:
    return any(
        row.has_class(name) or name in first.attr('class')
        for name in _SUBCATEGORY_CLASSES
    )


def _is_category_row(first: HtmlNode, qty_text: str, extended_text: str) -> bool:
    if not (qty_text and extended_text):
        return False
    return (
        matches_category_code(first.text())
        or is_legacy_category_markup(first)
        or first.find_nested('b') is not None
    )


def parse_addendum_rows(rows: List[HtmlNode]) -> List[OrderItem]:
    """
    Read subcategories and line items from the rows of an addendum table.

    Args:
        rows: All rows of the addendum table

    Returns:
        Subcategory and LineItem values in document order
    """
    items: List[OrderItem] = []
    state = CategoryState()

    for row in rows:
        cells = row.cells()
        if not cells:
            continue

        row_text = clean_text(row.text()).lower()
        if 'description' in row_text and 'qty' in row_text and 'extended' in row_text:
            continue

        first = cells[0]
        if _is_subcategory_row(row, first):
            name = cell_text(first)
            if name:
                state = state.with_sub_category(name)
                items.append(Subcategory(label=name))
            continue

        if len(cells) < 3:
            continue

        qty_text = cell_text(cells[1])
        extended_text = cell_text(amount_cell(cells))

        if _is_category_row(first, qty_text, extended_text):
            label = cell_text(first)
            if label:
                logger.debug(f"Tracking addendum main category: {label[:50]!r}")
                state = state.with_main_category(label)
                continue

        description = line_item_description(first)
        if not description:
            continue
        if is_column_header(description, qty_text, extended_text) or is_summary_text(description):
            continue

        amount = parse_amount(extended_text)
        if amount == 0:
            continue

        quantity = extract_quantity(qty_text)
        items.append(LineItem(
            label=description,
            quantity=quantity,
            unit_rate=compute_rate(amount, quantity),
            amount=amount,
            main_category=state.main_category,
            sub_category=state.sub_category,
        ))

    return items


def parse_addendum(html: str, addendum_number: str, url: str) -> AddendumData:
    """
    Parse an addendum view page.

    Args:
        html: HTML of the addendum page
        addendum_number: Document id from the view link (fallback number)
        url: View link the page was fetched from

    Returns:
        AddendumData numbered with the page's own "Addendum #" when present

    Raises:
        AddendumParseError: If no table or no items are found
    """
    root = document_root(html)

    page_match = _PAGE_ADDENDUM_RE.search(root.text())
    page_number = page_match.group(1) if page_match else None
    if page_number:
        logger.info(f"Found addendum number on page: {page_number} (URL ID: {addendum_number})")

    table = root.select_one('table.pos')
    if table is None:
        table = root.find_nested('table')
        if table is None:
            raise AddendumParseError(
                f"Failed to parse addendum {addendum_number}: Order Items Table not found in addendum HTML"
            )
        logger.warning(f"Table with class \"pos\" not found, using first table for addendum {addendum_number}")

    rows = table.find_all('tr')
    if not rows:
        raise AddendumParseError(f"Failed to parse addendum {addendum_number}: no rows found in addendum table")

    items = parse_addendum_rows(rows)
    if not items:
        raise AddendumParseError(
            f"No order items found in addendum {addendum_number}. Please verify the HTML structure."
        )

    number = page_number or addendum_number
    logger.info(f"Parsed addendum {number}: {len(items)} items found")
    return AddendumData(addendum_number=number, items=items, url=url, url_id=addendum_number)


def fetch_and_parse_addendum(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> AddendumData:
    """
    Fetch and parse a single addendum view page.

    Args:
        url: Addendum view link
        timeout: Request timeout in seconds
        session: Optional requests session to reuse

    Returns:
        AddendumData
    """
    if not validate_view_url(url):
        raise AddendumParseError(f"Invalid addendum URL format: {url}")

    view_id = extract_view_id(url)
    logger.info(f"Processing addendum #{view_id} from URL: {url}")
    html = fetch_view_html(url, timeout=timeout, session=session)
    return parse_addendum(html, view_id, url)


def fetch_and_parse_addendums(
    urls: List[str],
    timeout: float = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
) -> List[AddendumData]:
    """
    Fetch and parse several addendum pages, one at a time.

    A failing URL is logged and skipped.

    Args:
        urls: Addendum view links
        timeout: Request timeout in seconds
        session: Optional requests session to reuse

    Returns:
        Parsed addenda in input order

    Raises:
        AddendumParseError: If every URL fails
    """
    results = []
    errors: List[Dict[str, Any]] = []

    for url in urls:
        try:
            results.append(fetch_and_parse_addendum(url, timeout=timeout, session=session))
        except OrderDocumentError as e:
            errors.append({'url': url, 'error': str(e)})
            logger.error(f"Error processing addendum URL {url}: {str(e)}")

    if errors:
        logger.warning(f"{len(errors)} addendum(s) failed to process")

    if urls and not results:
        raise AddendumParseError(
            "All addendum URLs failed to process. Errors: " + '; '.join(e['error'] for e in errors)
        )
    return results
