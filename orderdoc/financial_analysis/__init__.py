"""
Financial checks on parsed order documents.
"""
from orderdoc.financial_analysis.reconciliation import (
    ReconciliationResult,
    TotalsReconciler,
    calculate_items_total,
    reconcile,
)

__all__ = ['ReconciliationResult', 'TotalsReconciler', 'calculate_items_total', 'reconcile']
