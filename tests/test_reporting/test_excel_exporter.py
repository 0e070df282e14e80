"""
Tests for the Excel exporter.
"""

import openpyxl
import pytest

from orderdoc.document_processor.models import LineItem, Location, MainCategory, Subcategory
from orderdoc.reporting.excel_exporter import ORDER_ITEM_COLUMNS, ExcelExporter, filter_items

MAIN = "0110 Calimingo - Pavers:"


@pytest.fixture
def items():
    return [
        MainCategory(label=MAIN),
        Subcategory(label="Demolition"),
        LineItem("Remove existing concrete", 162.0, 10.0, 1620.0, MAIN, "Demolition"),
        LineItem("Haul away", 1.0, 180.0, 180.0, MAIN, "Demolition"),
    ]


@pytest.fixture
def location():
    return Location(order_no="6400", client_name="Jane Doe", street_address="12 Palm Way",
                    order_grand_total=1800.0)


def test_export_order_items(tmp_path, items, location):
    output = tmp_path / "order.xlsx"
    info = ExcelExporter().export_order_items(items, location, str(output))

    assert info['path'] == str(output)
    assert info['sheets'] == ['Order Items', 'Location']
    assert info['row_count'] == 4

    workbook = openpyxl.load_workbook(output)
    assert workbook.sheetnames == ['Order Items', 'Location']

    sheet = workbook['Order Items']
    rows = list(sheet.iter_rows(values_only=True))
    assert list(rows[0]) == ORDER_ITEM_COLUMNS
    assert rows[1][:2] == ('Main Category', MAIN)
    assert rows[1][2] is None
    assert rows[2][:2] == ('Subcategory', 'Demolition')
    assert rows[3] == ('Item', 'Remove existing concrete', 162, 10, 1620, MAIN, 'Demolition')
    assert sheet.cell(row=4, column=5).number_format == '"$"#,##0.00'


def test_location_sheet(tmp_path, items, location):
    output = tmp_path / "order.xlsx"
    ExcelExporter().export_order_items(items, location, str(output))

    rows = list(openpyxl.load_workbook(output)['Location'].iter_rows(values_only=True))
    assert rows[0] == ('Field', 'Value')
    assert ('Order Id', '6400') in rows
    assert ('Client', 'Jane Doe') in rows
    assert ('Order Grand Total', 1800) in rows
    assert not any(row[0] == 'Phone' for row in rows)


def test_category_rows_can_be_left_out(tmp_path, items, location):
    output = tmp_path / "order.xlsx"
    info = ExcelExporter().export_order_items(
        items, location, str(output), include_main_categories=False, include_subcategories=False
    )

    assert info['row_count'] == 2
    rows = list(openpyxl.load_workbook(output)['Order Items'].iter_rows(min_row=2, values_only=True))
    assert [row[0] for row in rows] == ['Item', 'Item']


def test_flags_default_to_config(tmp_path, items, location):
    output = tmp_path / "order.xlsx"
    exporter = ExcelExporter({'include_main_categories': True, 'include_subcategories': False})

    assert exporter.export_order_items(items, location, str(output))['row_count'] == 3
    assert exporter.export_order_items(items, location, str(output), include_subcategories=True)['row_count'] == 4


def test_default_flags_come_from_global_config(tmp_path, items, location, monkeypatch):
    monkeypatch.setenv("ORDERDOC_EXPORT__INCLUDE_MAIN_CATEGORIES", "false")
    output = tmp_path / "order.xlsx"

    assert ExcelExporter().export_order_items(items, location, str(output))['row_count'] == 3


def test_export_without_location(tmp_path, items):
    output = tmp_path / "order.xlsx"
    ExcelExporter().export_order_items(items, None, str(output))

    rows = list(openpyxl.load_workbook(output)['Location'].iter_rows(values_only=True))
    assert rows == [('Field', 'Value')]


def test_filter_items_keeps_line_items(items):
    assert filter_items(items, False, True) == items[1:]
    assert filter_items(items, True, False) == [items[0]] + items[2:]
