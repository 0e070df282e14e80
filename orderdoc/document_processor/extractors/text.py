"""
Text field extractor module.

Reads the labeled fields (order id, client, address, totals, ...) from the
plain-text rendering of an order confirmation. Two authoring conventions are
seen in practice: ``Label: value`` and the emphasis style ``*Label:*value``
produced when the HTML bold markup is flattened to text.
"""
import re
import logging
from typing import Any, Callable, Dict, List, Optional

from orderdoc.document_processor.models import Location
from orderdoc.utils.common import normalize_amount

logger = logging.getLogger(__name__)

# Location attribute -> label as it appears in the document
FIELD_LABELS = {
    'order_no': 'Order Id',
    'dbx_customer_id': 'DBX Customer Id',
    'client_name': 'Client',
    'street_address': 'Address',
    'city': 'City',
    'state': 'State',
    'zip': 'Zip',
    'email': 'Email',
    'phone': 'Phone',
    'order_date': 'Order Date',
    'order_po': 'Order Po',
    'order_due_date': 'Order Due Date',
    'order_type': 'Order Type',
    'order_delivered': 'Order Delivered',
    'quote_expiration_date': 'Quote Expiration Date',
    'order_grand_total': 'Order Grand Total',
    'progress_payments': 'Progress Payments',
    'balance_due': 'Balance Due',
    'sales_rep': 'Sales Rep',
}

# Fields that must be strings, even when absent
REQUIRED_FIELDS = ('order_no', 'street_address', 'city', 'state', 'zip')

_COLON = '[:：]'
_VALUE = r'([^\n]*)'
_TRUE_VALUES = ('1', 'true', 'yes')
_FALSE_VALUES = ('0', 'false', 'no')


def _label_pattern(label: str) -> str:
    return r'\s*'.join(re.escape(word) for word in label.split())


def build_field_patterns(label: str) -> List[re.Pattern]:
    """
    Build the label patterns for a field, in precedence order.

    1. ``*Label:*value``
    2. ``*Label: value``
    3. ``*Label*:value``
    4. ``*Label:`` followed by whitespace
    5. ``Label:value`` without asterisks

    Args:
        label: Field label such as "Order Id"

    Returns:
        Compiled patterns whose first group is the raw value
    """
    name = _label_pattern(label)
    # Never let a label match the tail of a longer word ("Address" in "IPAddress")
    start = r'(?<![A-Za-z])'
    templates = [
        r'\*' + name + _COLON + r'\*' + _VALUE,
        r'\*' + name + _COLON + r' ' + _VALUE,
        r'\*' + name + r'\*' + _COLON + _VALUE,
        r'\*' + name + _COLON + r'[ \t]+' + _VALUE,
        start + name + _COLON + r'[ \t]*' + _VALUE,
    ]
    return [re.compile(template, re.IGNORECASE) for template in templates]


def clean_field_value(raw: Optional[str]) -> Optional[str]:
    """Strip asterisks and whitespace; an empty result means the field is absent."""
    if raw is None:
        return None
    value = raw.replace('*', '').strip()
    return value or None


def parse_positive_amount(value: Optional[str]) -> Optional[float]:
    amount = normalize_amount(value)
    if amount is None or amount <= 0:
        return None
    return amount


def parse_non_negative_amount(value: Optional[str]) -> Optional[float]:
    amount = normalize_amount(value)
    if amount is None or amount < 0:
        return None
    return amount


def parse_flag(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    return None


class LocationExtractor:
    """
    Extractor for the labeled customer/order fields of an order document.
    """

    converters: Dict[str, Callable[[Optional[str]], Any]] = {
        'order_grand_total': parse_positive_amount,
        'balance_due': parse_non_negative_amount,
        'order_delivered': parse_flag,
    }

    def __init__(self, field_labels: Optional[Dict[str, str]] = None):
        """
        Initialize the extractor.

        Args:
            field_labels: Optional mapping of Location attribute to label,
                overriding the default labels
        """
        self.field_labels = dict(FIELD_LABELS)
        if field_labels:
            self.field_labels.update(field_labels)
        self._patterns = {
            field: build_field_patterns(label)
            for field, label in self.field_labels.items()
        }

    def extract_field(self, text: str, field: str) -> Optional[str]:
        """
        Extract one raw field value; the first matching pattern wins.

        Args:
            text: Normalized document text
            field: Location attribute name

        Returns:
            Cleaned value, or None when the field is missing or empty
        """
        for pattern in self._patterns[field]:
            match = pattern.search(text)
            if match:
                return clean_field_value(match.group(1))
        return None

    def extract_fields(self, text: str) -> Dict[str, Any]:
        """
        Extract all known fields from text.

        Args:
            text: Plain-text rendering of the document

        Returns:
            Dictionary of Location attribute to converted value; fields that
            were not found are omitted
        """
        normalized = normalize_line_endings(text)
        fields = {}
        for field in self.field_labels:
            value = self.extract_field(normalized, field)
            converter = self.converters.get(field)
            if converter is not None:
                value = converter(value)
            if value is not None:
                fields[field] = value
        return fields

    def extract_location(self, text: Optional[str]) -> Location:
        """
        Build a Location from the plain-text view of an order document.

        Never raises. Missing fields are left empty and a warning with a text
        sample is logged when nothing identifying the customer is found.

        Args:
            text: Plain-text rendering of the document

        Returns:
            Location record
        """
        if not text or not text.strip():
            logger.warning("Empty text provided; no location fields extracted")
            return Location()

        location = Location(**self.extract_fields(text))

        if not location.has_identity:
            logger.warning("Could not extract client name, DBX Customer ID, or address from text")
            logger.warning(f"Text sample (first 500 chars): {normalize_line_endings(text)[:500]}")

        return location


def normalize_line_endings(text: str) -> str:
    return text.replace('\r\n', '\n').replace('\r', '\n')


def extract_location(text: Optional[str]) -> Location:
    """
    Extract the Location record from an order document's text.

    Args:
        text: Plain-text rendering of the document

    Returns:
        Location record (fields empty when not found)
    """
    return LocationExtractor().extract_location(text)
