"""
Common utility functions for the order document parser.

This module provides the text cleaning and numeric parsing helpers shared by
the text field extractor, the row classifier and the totals reconciler.
"""

import html
import re
from typing import Optional, Union
import logging

logger = logging.getLogger(__name__)

Number = Union[int, float]

_TAG_RE = re.compile(r'<\/?[^>]+(>|$)')
_WHITESPACE_RE = re.compile(r'\s+')
_LEADING_NUMBER_RE = re.compile(r'^[-+]?(?:\d+(?:\.\d*)?|\.\d+)')
_QUANTITY_RE = re.compile(r'^(\d[\d,]*(?:\.\d+)?)')


def clean_text(text: Optional[str]) -> str:
    """
    Clean HTML entities and formatting remnants from text.

    Entities are decoded, non-breaking spaces become spaces, asterisks left
    over from emphasis markup are dropped and whitespace runs are collapsed.

    Args:
        text: Raw text, possibly containing entities

    Returns:
        Cleaned, trimmed text ('' for empty input)
    """
    if not text:
        return ''

    text = html.unescape(text)
    text = text.replace('\u00a0', ' ').replace('*', '')
    return _WHITESPACE_RE.sub(' ', text).strip()


def strip_tags(markup: Optional[str]) -> str:
    """Replace every HTML tag in a fragment with a space."""
    if not markup:
        return ''
    return _TAG_RE.sub(' ', markup)


def parse_amount(value: Union[str, Number, None]) -> float:
    """
    Parse a currency amount such as "$1,234.56" into a float.

    Currency symbols, commas and whitespace are removed and the leading
    numeric prefix is read. Anything unparsable yields 0.0.

    Args:
        value: Amount text or number

    Returns:
        Parsed amount
    """
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        return float(value)

    cleaned = re.sub(r'[$,\s]', '', str(value).replace('\u00a0', ''))
    match = _LEADING_NUMBER_RE.match(cleaned)
    if not match:
        return 0.0
    try:
        return float(match.group(0))
    except ValueError:
        return 0.0


def normalize_amount(value: Union[str, Number, None]) -> Optional[float]:
    """
    Convert an amount string to a float, returning None when it cannot be read.

    Unlike parse_amount this distinguishes "0" from "not a number".

    Args:
        value: Amount text or number

    Returns:
        Parsed amount or None
    """
    if value is None or value == '':
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)

    cleaned = re.sub(r'[$,\s*]', '', str(value).replace('\u00a0', ''))
    if not cleaned:
        return None
    try:
        return float(cleaned)
    except ValueError:
        logger.debug(f"Failed to normalize amount string: {value}")
        return None


def extract_quantity(qty_text: Optional[str]) -> float:
    """
    Extract the numeric quantity from a quantity cell like "162 SF" or "1 EA".

    Args:
        qty_text: Quantity cell text

    Returns:
        Leading number in the text, or 1 when there is none
    """
    if not qty_text:
        return 1.0

    cleaned = qty_text.replace('\u00a0', ' ').strip()
    match = _QUANTITY_RE.match(cleaned)
    if match:
        return float(match.group(1).replace(',', ''))
    return 1.0


def compute_rate(amount: float, quantity: float) -> float:
    """Unit rate for a line; 0 when the quantity is zero."""
    if quantity > 0:
        return amount / quantity
    return 0.0


def format_currency(amount: Optional[float]) -> str:
    """
    Format a number as a currency string.

    Args:
        amount: Amount to format

    Returns:
        Formatted currency string
    """
    if amount is None:
        return "N/A"

    return f"${amount:,.2f}"


def normalize_style(style: Optional[str]) -> str:
    """Lowercase an inline style and drop all whitespace for rule matching."""
    if not style:
        return ''
    return _WHITESPACE_RE.sub('', style).lower()


def style_has(style: Optional[str], rule: str) -> bool:
    """Check whether an inline style contains a CSS rule, ignoring case and spacing."""
    return normalize_style(rule) in normalize_style(style)
