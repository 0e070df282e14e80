"""
Reporting package.
"""
from orderdoc.reporting.excel_exporter import ExcelExporter, filter_items

__all__ = ['ExcelExporter', 'filter_items']
