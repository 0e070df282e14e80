"""
Totals reconciler for parsed order documents.

This module checks the sum of the parsed line item amounts against the grand
total declared by the document. The verdict is advisory: it is shown to the
user as a warning and never blocks saving.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Union

import logging

from orderdoc.document_processor.models import LineItem, OrderItem
from orderdoc.utils.common import format_currency, normalize_amount

logger = logging.getLogger(__name__)

DEFAULT_TOLERANCE = 0.01
MISSING_GRAND_TOTAL_MESSAGE = 'Order Grand Total is missing or zero'


@dataclass(frozen=True)
class ReconciliationResult:
    """Outcome of comparing line item amounts with the grand total."""

    is_valid: bool
    items_total: float
    grand_total: float
    difference: float
    message: Optional[str] = None

    @property
    def grand_total_missing(self) -> bool:
        return not self.is_valid and self.message == MISSING_GRAND_TOTAL_MESSAGE

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'isValid': self.is_valid,
            'itemsTotal': self.items_total,
            'orderGrandTotal': self.grand_total,
            'difference': self.difference,
        }
        if self.message:
            result['message'] = self.message
        return result


def calculate_items_total(items: Iterable[Union[OrderItem, Dict[str, Any]]]) -> float:
    """
    Sum the amounts of the line items in an order item list.

    Category rows contribute nothing. Amounts are coerced through the
    currency parser (legacy dict items may carry "$1,234.00" strings) and
    anything that is not a positive number is left out.

    Args:
        items: Order items, as model values or legacy dictionaries

    Returns:
        Sum of the positive line item amounts
    """
    total = 0.0
    for item in items or []:
        if isinstance(item, LineItem):
            raw = item.amount
        elif isinstance(item, dict) and item.get('type') == 'item':
            raw = item.get('amount')
        else:
            continue

        amount = normalize_amount(raw)
        if amount is not None and amount > 0:
            total += amount
    return total


class TotalsReconciler:
    """Compares parsed line item totals with a document's grand total."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize the reconciler.

        Args:
            config: Optional ``reconciliation`` configuration section
        """
        self.config = config or {}
        self.tolerance = float(self.config.get('tolerance', DEFAULT_TOLERANCE))

    def reconcile(
        self,
        items: Iterable[Union[OrderItem, Dict[str, Any]]],
        grand_total: Optional[float],
        tolerance: Optional[float] = None,
    ) -> ReconciliationResult:
        """Validate that the line items add up to the grand total.

        Args:
            items: Parsed order items
            grand_total: Grand total declared by the document
            tolerance: Allowed absolute difference; defaults to the configured value

        Returns:
            ReconciliationResult; a missing grand total is reported with its
            own message rather than as a mismatch
        """
        tolerance = self.tolerance if tolerance is None else tolerance
        items_total = calculate_items_total(items)

        if not grand_total:
            return ReconciliationResult(
                is_valid=False,
                items_total=items_total,
                grand_total=0.0,
                difference=items_total,
                message=MISSING_GRAND_TOTAL_MESSAGE,
            )

        difference = abs(items_total - grand_total)
        if difference > tolerance:
            message = (
                f"Order items total ({format_currency(items_total)}) does not match "
                f"Order Grand Total ({format_currency(grand_total)}). "
                f"Difference: {format_currency(difference)}"
            )
            logger.info(message)
            return ReconciliationResult(
                is_valid=False,
                items_total=items_total,
                grand_total=grand_total,
                difference=difference,
                message=message,
            )

        return ReconciliationResult(
            is_valid=True,
            items_total=items_total,
            grand_total=grand_total,
            difference=difference,
        )


def reconcile(
    items: Iterable[Union[OrderItem, Dict[str, Any]]],
    grand_total: Optional[float],
    tolerance: float = DEFAULT_TOLERANCE,
) -> ReconciliationResult:
    """
    Compare the sum of line item amounts with the grand total.

    Args:
        items: Parsed order items
        grand_total: Grand total declared by the document
        tolerance: Allowed absolute difference

    Returns:
        ReconciliationResult
    """
    return TotalsReconciler().reconcile(items, grand_total, tolerance)
