"""
Excel exporter for parsed order documents.

This module writes an order's item list and location record to a workbook.
"""

import logging
from typing import Dict, List, Any, Optional
from datetime import datetime
import pandas as pd
import openpyxl
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill

from orderdoc.config import get_section
from orderdoc.document_processor.models import LineItem, Location, MainCategory, OrderItem, Subcategory

# Set up logging
logger = logging.getLogger(__name__)

ORDER_ITEM_COLUMNS = ['Type', 'Product/Service', 'Qty', 'Rate', 'Amount', 'Main Category', 'Subcategory']
LOCATION_COLUMNS = ['Field', 'Value']

_TYPE_LABELS = {
    'maincategory': 'Main Category',
    'subcategory': 'Subcategory',
    'item': 'Item',
}

# Header labels for the Location sheet, in display order
_LOCATION_LABELS = {
    'order_no': 'Order Id',
    'client_name': 'Client',
    'dbx_customer_id': 'DBX Customer Id',
    'street_address': 'Address',
    'city': 'City',
    'state': 'State',
    'zip': 'Zip',
    'email': 'Email',
    'phone': 'Phone',
    'order_date': 'Order Date',
    'order_po': 'Order PO',
    'order_due_date': 'Order Due Date',
    'order_type': 'Order Type',
    'order_delivered': 'Order Delivered',
    'quote_expiration_date': 'Quote Expiration Date',
    'order_grand_total': 'Order Grand Total',
    'progress_payments': 'Progress Payments',
    'balance_due': 'Balance Due',
    'sales_rep': 'Sales Rep',
}


def filter_items(
    items: List[OrderItem],
    include_main_categories: bool = True,
    include_subcategories: bool = True,
) -> List[OrderItem]:
    """Drop category rows from an item list; line items are always kept."""
    result = []
    for item in items:
        if isinstance(item, MainCategory) and not include_main_categories:
            continue
        if isinstance(item, Subcategory) and not include_subcategories:
            continue
        result.append(item)
    return result


class ExcelExporter:
    """Exports parsed order documents to Excel format."""

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize the Excel exporter.

        Args:
            config: Optional ``export`` configuration section; defaults to the global one
        """
        self.config = config if config is not None else get_section('export')

    def export_order_items(
        self,
        items: List[OrderItem],
        location: Optional[Location],
        output_path: str,
        include_main_categories: Optional[bool] = None,
        include_subcategories: Optional[bool] = None,
    ) -> Dict[str, Any]:
        """Export an order's items and location to Excel.

        Args:
            items: Parsed order items
            location: Parsed location record
            output_path: Path to save the Excel file
            include_main_categories: Keep main category rows; defaults to the configured value
            include_subcategories: Keep subcategory rows; defaults to the configured value

        Returns:
            Dictionary with export information
        """
        if include_main_categories is None:
            include_main_categories = self.config.get('include_main_categories', True)
        if include_subcategories is None:
            include_subcategories = self.config.get('include_subcategories', True)

        logger.info(f"Exporting order items to Excel: {output_path}")
        rows = filter_items(items, include_main_categories, include_subcategories)

        # Create a writer to save the Excel file
        with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
            self._order_items_frame(rows).to_excel(writer, sheet_name='Order Items', index=False)
            self._location_frame(location).to_excel(writer, sheet_name='Location', index=False)

            # Get the workbook to apply formatting
            workbook = writer.book

            for sheet_name in workbook.sheetnames:
                self._format_sheet(workbook[sheet_name])
                self._auto_adjust_columns(workbook[sheet_name])

            self._format_amounts(workbook['Order Items'])

        return {
            'path': output_path,
            'sheets': ['Order Items', 'Location'],
            'row_count': len(rows),
            'generated_at': datetime.now().isoformat()
        }

    def _order_items_frame(self, items: List[OrderItem]) -> pd.DataFrame:
        records = []
        for item in items:
            if isinstance(item, LineItem):
                records.append({
                    'Type': _TYPE_LABELS[item.kind],
                    'Product/Service': item.label,
                    'Qty': item.quantity,
                    'Rate': item.unit_rate,
                    'Amount': item.amount,
                    'Main Category': item.main_category or '',
                    'Subcategory': item.sub_category or '',
                })
            else:
                records.append({
                    'Type': _TYPE_LABELS[item.kind],
                    'Product/Service': item.label,
                    'Qty': None,
                    'Rate': None,
                    'Amount': None,
                    'Main Category': '',
                    'Subcategory': '',
                })
        return pd.DataFrame(records, columns=ORDER_ITEM_COLUMNS)

    def _location_frame(self, location: Optional[Location]) -> pd.DataFrame:
        records = []
        if location is not None:
            for name, label in _LOCATION_LABELS.items():
                value = getattr(location, name)
                if value is None or value == '':
                    continue
                records.append({'Field': label, 'Value': value})
        return pd.DataFrame(records, columns=LOCATION_COLUMNS)

    def _format_sheet(self, worksheet: openpyxl.worksheet.worksheet.Worksheet) -> None:
        """Apply formatting to a worksheet.

        Args:
            worksheet: The worksheet to format
        """
        # Style for headers (first row)
        header_font = Font(bold=True, size=12, color="FFFFFF")
        header_fill = PatternFill(start_color="4F81BD", end_color="4F81BD", fill_type="solid")
        header_alignment = Alignment(horizontal='center', vertical='center', wrap_text=True)

        thin_border = Border(
            left=Side(style='thin'),
            right=Side(style='thin'),
            top=Side(style='thin'),
            bottom=Side(style='thin')
        )

        for cell in worksheet[1]:
            cell.font = header_font
            cell.fill = header_fill
            cell.alignment = header_alignment
            cell.border = thin_border

        category_font = Font(bold=True, size=11)
        category_fill = PatternFill(start_color="DCE6F1", end_color="DCE6F1", fill_type="solid")

        for row in worksheet.iter_rows(min_row=2):
            is_category = row[0].value in ('Main Category', 'Subcategory')
            for cell in row:
                cell.border = thin_border
                cell.alignment = Alignment(vertical='center', wrap_text=True)
                if is_category:
                    cell.font = category_font
                    cell.fill = category_fill

    def _format_amounts(self, worksheet: openpyxl.worksheet.worksheet.Worksheet) -> None:
        """Use a currency number format for the Rate and Amount columns."""
        headers = [cell.value for cell in worksheet[1]]
        for header in ('Rate', 'Amount'):
            if header not in headers:
                continue
            column = headers.index(header) + 1
            for (cell,) in worksheet.iter_rows(min_row=2, min_col=column, max_col=column):
                if isinstance(cell.value, (int, float)):
                    cell.number_format = '"$"#,##0.00'

    def _auto_adjust_columns(self, worksheet: openpyxl.worksheet.worksheet.Worksheet) -> None:
        """Auto-adjust column widths based on content.

        Args:
            worksheet: The worksheet to adjust
        """
        dims = {}
        for row in worksheet.rows:
            for cell in row:
                if cell.value:
                    dims[cell.column_letter] = max(
                        (dims.get(cell.column_letter, 0)),
                        len(str(cell.value)) + 2
                    )

        # Limit max width to 50 characters
        for col, width in dims.items():
            worksheet.column_dimensions[col].width = min(width, 50)
