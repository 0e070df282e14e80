"""
Row classifier and category state tracker for order item tables.

Order documents are rendered by the vendor system as one flat table. The
category hierarchy is implicit: a main-category row opens a section, an
optional subcategory row opens a subsection, and priced rows belong to
whatever was opened last. Two generations of markup are in circulation (bold
spans with an ``ssg_title`` class for subcategories, and the newer
border-top/letter-spacing inline styles), so each format variant is
recognized by its own small predicate.

Processing a row is a pure step: ``classify_and_process(row, state)`` takes
the immutable CategoryState in effect before the row and returns the state
after it together with the items the row emits.
"""
import re
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple

from orderdoc.document_processor.interfaces import HtmlNode
from orderdoc.document_processor.models import (
    AddendumBlock,
    LineItem,
    MainCategory,
    OrderItem,
    Subcategory,
)
from orderdoc.utils.common import (
    clean_text,
    compute_rate,
    extract_quantity,
    parse_amount,
    strip_tags,
    style_has,
)

logger = logging.getLogger(__name__)

SUMMARY_KEYWORDS = ('subtotal', 'tax', 'grand total', 'current balance', 'current job balance')
LEGACY_SUBCATEGORY_CLASS = 'ssg_title'

MODERN_CATEGORY_BORDER = 'border-top:solid 1px #666'
MODERN_SUBCATEGORY_BORDER = 'border-top:solid 1px #bbb'
MODERN_SUBCATEGORY_SPACING = 'letter-spacing:2px'
LEGACY_CATEGORY_STYLES = ('font-weight:bold', 'font-size:14px')
INDENT_RULE = 'padding-left:30px'

ADDENDUM_AMOUNT_MIN = 1.0
ADDENDUM_AMOUNT_MAX = 1000000.0

_SUMMARY_RE = re.compile(
    r'^(?:' + '|'.join(re.escape(k) for k in SUMMARY_KEYWORDS) + r')\s*:?\s*(?:[($\d].*)?$'
)
_CATEGORY_CODE_RE = re.compile(r'^\d{4}\s+Calimingo')
_ADDENDUM_RE = re.compile(r'addendum\s*#\s*(\d+)', re.IGNORECASE)
_DATE_RE = re.compile(r'\b\d{1,2}/\d{1,2}/\d{2,4}\b')
_UNWRAP_RES = [
    re.compile(r'<strong[^>]*>(.*?)</strong>', re.IGNORECASE | re.DOTALL),
    re.compile(r'<em[^>]*>(.*?)</em>', re.IGNORECASE | re.DOTALL),
    re.compile(r'<b(?:\s[^>]*)?>(.*?)</b>', re.IGNORECASE | re.DOTALL),
    re.compile(r'<i(?:\s[^>]*)?>(.*?)</i>', re.IGNORECASE | re.DOTALL),
]
_BR_RE = re.compile(r'<br\s*/?>', re.IGNORECASE)


class RowKind(Enum):
    """Role of a table row, in classification precedence order."""
    NESTED_TABLE = "nested_table"
    EMPTY = "empty"
    SUMMARY = "summary"
    SUBCATEGORY = "subcategory"
    MAIN_CATEGORY = "main_category"
    LINE_ITEM = "line_item"
    UNMATCHED = "unmatched"


@dataclass(frozen=True)
class CategoryState:
    """Main category and subcategory in effect at a point in the row scan."""

    main_category: Optional[str] = None
    sub_category: Optional[str] = None

    def with_main_category(self, label: str) -> 'CategoryState':
        # A new section always closes the previous subsection
        return CategoryState(main_category=label, sub_category=None)

    def with_sub_category(self, label: str) -> 'CategoryState':
        return CategoryState(main_category=self.main_category, sub_category=label)


@dataclass(frozen=True)
class RowStep:
    """Outcome of processing one row."""

    kind: RowKind
    state: CategoryState
    items: Tuple[OrderItem, ...] = field(default_factory=tuple)
    stop: bool = False
    dropped: bool = False


# ---------------------------------------------------------------------------
# String predicates
# ---------------------------------------------------------------------------

def is_summary_text(text: str) -> bool:
    """
    Check whether text is a subtotal/tax/total trailer label.

    The keyword must be the whole text, optionally followed by a colon and a
    figure ("Subtotal: $450.00"); "Tax credit" or "Pool tax" do not match.
    """
    return bool(_SUMMARY_RE.match(clean_text(text).lower()))


def is_subtotal_text(text: str) -> bool:
    return clean_text(text).lower().startswith('subtotal')


def is_progress_header_text(text: str) -> bool:
    """Column headers of the progress-payments block (Phase / Completed / Amt Paid ...)."""
    lowered = clean_text(text).lower()
    return 'phase' in lowered and (
        'completed' in lowered or 'amt paid' in lowered or 'date paid' in lowered
    )


def is_addendum_dated_text(text: str, cell_count: int) -> bool:
    """A progress-payment line for an addendum that leaked out of its nested table."""
    lowered = clean_text(text).lower()
    if 'addendum #' not in lowered:
        return False
    return bool(_DATE_RE.search(lowered)) or 'date paid' in lowered or cell_count > 3


def is_column_header(first: str, second: str, third: str) -> bool:
    """Check for the DESCRIPTION / QTY / EXTENDED header row."""
    return (
        'DESCRIPTION' in clean_text(first).upper()
        and 'QTY' in clean_text(second).upper()
        and 'EXTENDED' in clean_text(third).upper()
    )


def matches_category_code(text: str) -> bool:
    """Check for a four digit category code such as "0110 Calimingo"."""
    return bool(_CATEGORY_CODE_RE.match(clean_text(text)))


def compose_category_label(name: str, description: str = '') -> str:
    """
    Build a main category label, e.g. "0110 Calimingo - Pavers - Entry walk:".

    Any trailing colon in the source name is dropped and exactly one is
    appended after the optional description.
    """
    label = re.sub(r':\s*$', '', clean_text(name)).strip()
    description = clean_text(description)
    if description:
        label = f"{label} - {description}"
    return f"{label}:"


def has_text(text: str) -> bool:
    return bool(re.search(r'\w', clean_text(text)))


# ---------------------------------------------------------------------------
# Cell predicates
# ---------------------------------------------------------------------------

def cell_text(cell: Optional[HtmlNode]) -> str:
    if cell is None:
        return ''
    return clean_text(cell.text())


def is_indented(cell: HtmlNode) -> bool:
    return style_has(cell.attr('style'), INDENT_RULE)


def is_legacy_subcategory_markup(row: HtmlNode, cells: Sequence[HtmlNode]) -> bool:
    """Older documents mark subcategory rows with the ssg_title class."""
    if row.has_class(LEGACY_SUBCATEGORY_CLASS):
        return True
    return bool(cells) and LEGACY_SUBCATEGORY_CLASS in cells[0].attr('class')


def is_modern_subcategory_markup(cells: Sequence[HtmlNode]) -> bool:
    """Newer documents: empty first cell, styled second cell wrapping a <strong>."""
    if len(cells) < 2:
        return False
    if cell_text(cells[0]):
        return False
    style = cells[1].attr('style')
    return (
        style_has(style, MODERN_SUBCATEGORY_BORDER)
        and style_has(style, MODERN_SUBCATEGORY_SPACING)
        and cells[1].find_nested('strong') is not None
    )


def _has_legacy_category_style(style: str) -> bool:
    return any(style_has(style, rule) for rule in LEGACY_CATEGORY_STYLES)


def is_legacy_category_markup(cell: HtmlNode) -> bool:
    """Bold or large-font styling, or a <strong>, inside the description cell.

    Only the inner markup counts; a bold <td> on its own is not a category.
    """
    if _has_legacy_category_style(cell.inner_html()):
        return True
    return cell.find_nested('strong') is not None


def is_modern_category_markup(cell: HtmlNode) -> bool:
    """Dark border-top rule on a cell whose text starts with a category code."""
    return style_has(cell.attr('style'), MODERN_CATEGORY_BORDER) and matches_category_code(cell.text())


def is_summary_row(row: HtmlNode, cells: Sequence[HtmlNode]) -> bool:
    first = cell_text(cells[0]) if cells else ''
    row_text = clean_text(row.text())
    if is_summary_text(first) or is_summary_text(row_text):
        return True
    if is_progress_header_text(row_text) or is_addendum_dated_text(row_text, len(cells)):
        return True
    if len(cells) >= 3 and is_column_header(cells[0].text(), cells[1].text(), cells[2].text()):
        return True
    return False


def is_subtotal_row(row: Optional[HtmlNode]) -> bool:
    if row is None:
        return False
    cells = row.cells()
    if cells and is_subtotal_text(cells[0].text()):
        return True
    return is_subtotal_text(row.text())


# ---------------------------------------------------------------------------
# Value extraction
# ---------------------------------------------------------------------------

def amount_cell(cells: Sequence[HtmlNode]) -> HtmlNode:
    """
    Cell holding the extended amount.

    The standard layout is DESCRIPTION / QTY / EXTENDED; rows that carry an
    extra unit-rate column put the extended amount in the fourth cell.
    """
    return cells[3] if len(cells) >= 4 else cells[2]


def cell_amount(cell: HtmlNode) -> float:
    """Amount in a cell, preferring a <strong>-wrapped figure."""
    strong = cell.find_nested('strong')
    text = cell_text(strong) if strong is not None else cell_text(cell)
    return parse_amount(text)


def legacy_category_name(cell: HtmlNode) -> str:
    for span in cell.find_all('span'):
        if _has_legacy_category_style(span.attr('style')):
            return cell_text(span)
    strong = cell.find_nested('strong')
    if strong is not None:
        return cell_text(strong)
    return modern_category_name(cell)


def modern_category_name(cell: HtmlNode) -> str:
    """Category code and name: the cell markup before the first <br> or <em>."""
    markup = cell.inner_html()
    cut = len(markup)
    for marker in ('<br', '<em'):
        index = markup.lower().find(marker)
        if index > -1:
            cut = min(cut, index)
    return clean_text(strip_tags(markup[:cut]))


def category_description(cell: HtmlNode) -> str:
    em = cell.find_nested('em')
    return cell_text(em) if em is not None else ''


def line_item_description(cell: HtmlNode) -> str:
    """Description text with inline formatting unwrapped and <br> read as a space."""
    markup = cell.inner_html()
    for pattern in _UNWRAP_RES:
        markup = pattern.sub(r'\1', markup)
    markup = _BR_RE.sub(' ', markup)
    return clean_text(strip_tags(markup))


def extract_addendum_blocks(
    table: HtmlNode,
    amount_min: float = ADDENDUM_AMOUNT_MIN,
    amount_max: float = ADDENDUM_AMOUNT_MAX,
) -> List[AddendumBlock]:
    """
    Read addendum payments from a nested progress-payments table.

    The amount is taken from the third cell (the AMT column). When that cell
    does not hold a usable figure, the largest value between amount_min and
    amount_max found in any cell of the row is used instead.

    Args:
        table: Nested table node
        amount_min: Smallest plausible fallback amount
        amount_max: Largest plausible fallback amount

    Returns:
        Addendum blocks in table order
    """
    blocks = []
    for sub_row in table.find_all('tr'):
        match = _ADDENDUM_RE.search(clean_text(sub_row.text()))
        if not match:
            continue

        sub_cells = sub_row.cells()
        if len(sub_cells) < 3:
            continue

        amount = parse_amount(cell_text(sub_cells[2]))
        if amount < 1:
            candidates = [parse_amount(cell_text(cell)) for cell in sub_cells]
            plausible = [value for value in candidates if amount_min <= value <= amount_max]
            if plausible:
                amount = max(plausible)

        if amount > 0:
            blocks.append(AddendumBlock(addendum_number=match.group(1), amount=amount))
        else:
            logger.debug(f"Addendum #{match.group(1)} has no readable amount")
    return blocks


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------

def _main_category_format(cells: Sequence[HtmlNode]) -> Optional[str]:
    if len(cells) < 3:
        return None
    if not (cell_text(cells[1]) and cell_text(cells[2])):
        return None
    if is_legacy_category_markup(cells[0]):
        return 'legacy'
    if is_modern_category_markup(cells[0]):
        return 'modern'
    return None


def _line_item_fields(cells: Sequence[HtmlNode]) -> Optional[Tuple[str, float, float, bool]]:
    """Description, quantity, amount and indentation of an acceptable line item row."""
    if len(cells) < 3:
        return None

    first = cells[0]
    indented = is_indented(first)
    description = line_item_description(first)
    qty_text = cell_text(cells[1])
    amount_text = cell_text(amount_cell(cells))

    if not description:
        return None
    if 'description' in description.lower() and 'qty' in qty_text.lower():
        return None
    if is_summary_text(description):
        return None
    if not (indented or (qty_text and amount_text)):
        return None

    amount = cell_amount(amount_cell(cells))
    if amount <= 0 and not indented:
        return None
    return description, extract_quantity(qty_text), amount, indented


def classify_row(row: HtmlNode) -> RowKind:
    """
    Decide the role of one row. The first matching rule wins.

    Args:
        row: Table row node

    Returns:
        RowKind of the row
    """
    if row.find_nested('table') is not None:
        return RowKind.NESTED_TABLE

    cells = row.cells()
    if not cells:
        return RowKind.EMPTY
    if is_summary_row(row, cells):
        return RowKind.SUMMARY
    if is_legacy_subcategory_markup(row, cells) or is_modern_subcategory_markup(cells):
        return RowKind.SUBCATEGORY
    if _main_category_format(cells):
        return RowKind.MAIN_CATEGORY
    if _line_item_fields(cells):
        return RowKind.LINE_ITEM
    return RowKind.UNMATCHED


def _process_subcategory(row: HtmlNode, state: CategoryState) -> RowStep:
    cells = row.cells()
    if is_legacy_subcategory_markup(row, cells):
        name = cell_text(cells[0])
    else:
        name = cell_text(cells[1].find_nested('strong'))

    if not name:
        return RowStep(kind=RowKind.SUBCATEGORY, state=state)
    return RowStep(
        kind=RowKind.SUBCATEGORY,
        state=state.with_sub_category(name),
        items=(Subcategory(label=name),),
    )


def _process_main_category(
    row: HtmlNode,
    state: CategoryState,
    next_row: Optional[HtmlNode],
) -> RowStep:
    cells = row.cells()
    first = cells[0]
    if _main_category_format(cells) == 'legacy':
        name = legacy_category_name(first)
    else:
        name = modern_category_name(first)

    label = compose_category_label(name, category_description(first))
    items: List[OrderItem] = [MainCategory(label=label)]

    # A category directly followed by its subtotal has no child rows; keep its
    # own figure as a line item so the value is not lost.
    if is_subtotal_row(next_row):
        amount = cell_amount(amount_cell(cells))
        if amount > 0:
            quantity = extract_quantity(cell_text(cells[1]))
            rate = amount / quantity if quantity > 0 else amount
            items.append(LineItem(
                label=re.sub(r':\s*$', '', label),
                quantity=quantity,
                unit_rate=rate,
                amount=amount,
                main_category=label,
            ))

    return RowStep(
        kind=RowKind.MAIN_CATEGORY,
        state=state.with_main_category(label),
        items=tuple(items),
    )


def _process_line_item(row: HtmlNode, state: CategoryState) -> RowStep:
    description, quantity, amount, _ = _line_item_fields(row.cells())
    item = LineItem(
        label=description,
        quantity=quantity,
        unit_rate=compute_rate(amount, quantity),
        amount=amount,
        main_category=state.main_category,
        sub_category=state.sub_category,
    )
    return RowStep(kind=RowKind.LINE_ITEM, state=state, items=(item,))


def classify_and_process(
    row: HtmlNode,
    state: CategoryState,
    next_row: Optional[HtmlNode] = None,
    addendum_amount_min: float = ADDENDUM_AMOUNT_MIN,
    addendum_amount_max: float = ADDENDUM_AMOUNT_MAX,
) -> RowStep:
    """
    Classify one row and apply it to the category state.

    Args:
        row: Table row node
        state: Category state before this row
        next_row: Following row of the same table, used to spot categories
            that are immediately closed by a subtotal
        addendum_amount_min: Lower bound for fallback addendum amounts
        addendum_amount_max: Upper bound for fallback addendum amounts

    Returns:
        RowStep with the new state, emitted items and the stop flag
    """
    kind = classify_row(row)

    if kind == RowKind.NESTED_TABLE:
        # The progress-payments block is always the last feature of the table
        blocks = extract_addendum_blocks(
            row.find_nested('table'), addendum_amount_min, addendum_amount_max
        )
        items = tuple(item for block in blocks for item in block.to_items())
        return RowStep(kind=kind, state=state, items=items, stop=True)

    if kind == RowKind.SUBCATEGORY:
        return _process_subcategory(row, state)
    if kind == RowKind.MAIN_CATEGORY:
        return _process_main_category(row, state, next_row)
    if kind == RowKind.LINE_ITEM:
        return _process_line_item(row, state)

    if kind == RowKind.UNMATCHED:
        cells = row.cells()
        dropped = len(cells) >= 3 and has_text(cells[0].text())
        return RowStep(kind=kind, state=state, dropped=dropped)

    return RowStep(kind=kind, state=state)
