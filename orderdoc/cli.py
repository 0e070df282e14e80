#!/usr/bin/env python
"""
Command-line interface for the order document parser.

This module provides the main entry point for the orderdoc CLI, with commands
for parsing, validating and exporting order documents and for following the
contract and addendum links an order email carries.
"""

import sys
import json
import logging
import argparse
from pathlib import Path

from orderdoc.config import get_config, get_section
from orderdoc.document_processor.extractors.addendum import fetch_and_parse_addendums
from orderdoc.document_processor.interfaces import OrderDocumentError
from orderdoc.document_processor.models import LineItem, MainCategory, Subcategory
from orderdoc.document_processor.processor import OrderDocumentProcessor
from orderdoc.document_processor.sources import extract_contract_links, load_eml
from orderdoc.financial_analysis.reconciliation import TotalsReconciler
from orderdoc.reporting.excel_exporter import ExcelExporter
from orderdoc.utils.common import format_currency

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_INVALID = 1
EXIT_FAILURE = 2


def configure_logging() -> None:
    """Configure root logging from the ``logging`` configuration section."""
    section = get_section('logging')
    logging.basicConfig(
        level=getattr(logging, str(section.get('level', 'INFO')).upper(), logging.INFO),
        format=section.get('format', '%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    )


def _print_item(item) -> None:
    if isinstance(item, MainCategory):
        print(item.label)
    elif isinstance(item, Subcategory):
        print(f"  {item.label}")
    elif isinstance(item, LineItem):
        label = item.label if len(item.label) <= 60 else item.label[:57] + "..."
        print(f"    - {label}: {item.quantity:g} x {format_currency(item.unit_rate)} = "
              f"{format_currency(item.amount)}")


def _load(args):
    file_path = Path(args.file_path)
    if not file_path.exists():
        logger.error(f"File not found: {file_path}")
        return None
    return OrderDocumentProcessor(get_config()).process_file(file_path)


def parse_document(args) -> int:
    """Parse an order document and print its contents.

    Args:
        args: Command-line arguments

    Returns:
        Exit status
    """
    result = _load(args)
    if result is None or not result.success:
        if result is not None:
            logger.error(result.error)
        return EXIT_FAILURE

    if args.json:
        print(json.dumps(result.to_dict(), indent=2, default=str))
        return EXIT_OK

    location = result.location
    print(f"Order: {location.order_no or '(none)'}")
    if location.client_name:
        print(f"Client: {location.client_name}")
    address = ', '.join(part for part in (location.street_address, location.city, location.state, location.zip) if part)
    if address:
        print(f"Address: {address}")
    if location.order_grand_total is not None:
        print(f"Grand total: {format_currency(location.order_grand_total)}")

    print(f"Main categories: {result.metadata['main_categories']}, "
          f"subcategories: {result.metadata['subcategories']}, "
          f"line items: {result.metadata['line_items']}")
    print()
    for item in result.items:
        _print_item(item)
    return EXIT_OK


def validate_document(args) -> int:
    """Check that an order document's line items add up to its grand total.

    Args:
        args: Command-line arguments

    Returns:
        EXIT_OK when the totals reconcile, EXIT_INVALID otherwise
    """
    result = _load(args)
    if result is None or not result.success:
        if result is not None:
            logger.error(result.error)
        return EXIT_FAILURE

    reconciliation = result.reconciliation
    if args.tolerance is not None:
        reconciliation = TotalsReconciler().reconcile(
            result.items, result.location.order_grand_total, args.tolerance
        )

    print(f"Items total: {format_currency(reconciliation.items_total)}")
    print(f"Grand total: {format_currency(reconciliation.grand_total)}")
    print(f"Difference: {format_currency(reconciliation.difference)}")
    if reconciliation.is_valid:
        print("Totals reconcile")
        return EXIT_OK

    print(f"Totals do not reconcile: {reconciliation.message}")
    return EXIT_INVALID


def export_document(args) -> int:
    """Export an order document to an Excel workbook.

    Args:
        args: Command-line arguments

    Returns:
        Exit status
    """
    result = _load(args)
    if result is None or not result.success:
        if result is not None:
            logger.error(result.error)
        return EXIT_FAILURE

    exporter = ExcelExporter(get_section('export'))
    info = exporter.export_order_items(
        result.items,
        result.location,
        args.output_path,
        include_main_categories=False if args.no_main_categories else None,
        include_subcategories=False if args.no_subcategories else None,
    )
    print(f"Wrote {info['row_count']} rows to {info['path']}")
    return EXIT_OK


def show_links(args) -> int:
    """Print the contract and addendum links found in an order email.

    Args:
        args: Command-line arguments

    Returns:
        Exit status
    """
    try:
        links = extract_contract_links(load_eml(args.file_path))
    except OrderDocumentError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    print(f"Original contract: {links.original_contract_url or '(none)'}")
    if links.addendum_urls:
        print("Addendums:")
        for url in links.addendum_urls:
            print(f"  {url}")
    else:
        print("Addendums: (none)")
    return EXIT_OK


def parse_addendums(args) -> int:
    """Fetch and parse addendum view pages.

    Args:
        args: Command-line arguments

    Returns:
        Exit status
    """
    sources = get_section('sources')
    try:
        addendums = fetch_and_parse_addendums(args.urls, timeout=sources.get('fetch_timeout', 30))
    except OrderDocumentError as e:
        logger.error(str(e))
        return EXIT_FAILURE

    for addendum in addendums:
        print(f"Addendum #{addendum.addendum_number} ({addendum.url})")
        for item in addendum.items:
            _print_item(item)
        print()
    return EXIT_OK


def parse_args(args=None):
    """Parse command-line arguments.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(description='Order document parser')
    subparsers = parser.add_subparsers(dest='command', help='Command')

    parse_parser = subparsers.add_parser('parse', help='Parse an order document (.eml or .html)')
    parse_parser.add_argument('file_path', help='Path to the document file')
    parse_parser.add_argument('--json', action='store_true', help='Print the result as JSON')

    validate_parser = subparsers.add_parser('validate', help='Check line items against the grand total')
    validate_parser.add_argument('file_path', help='Path to the document file')
    validate_parser.add_argument('--tolerance', type=float, help='Allowed difference (default from config)')

    export_parser = subparsers.add_parser('export', help='Export order items to Excel')
    export_parser.add_argument('file_path', help='Path to the document file')
    export_parser.add_argument('output_path', help='Path of the .xlsx file to write')
    export_parser.add_argument('--no-main-categories', action='store_true', help='Leave out main category rows')
    export_parser.add_argument('--no-subcategories', action='store_true', help='Leave out subcategory rows')

    links_parser = subparsers.add_parser('links', help='List contract and addendum links in an order email')
    links_parser.add_argument('file_path', help='Path to the .eml file')

    addendum_parser = subparsers.add_parser('addendum', help='Fetch and parse addendum view pages')
    addendum_parser.add_argument('urls', nargs='+', help='Addendum view links')

    parsed = parser.parse_args(args)
    if parsed.command is None:
        parser.print_help()
    return parsed


COMMANDS = {
    'parse': parse_document,
    'validate': validate_document,
    'export': export_document,
    'links': show_links,
    'addendum': parse_addendums,
}


def main(argv=None) -> int:
    """Main entry point for the orderdoc CLI."""
    args = parse_args(argv)
    if args.command is None:
        return EXIT_OK

    configure_logging()
    return COMMANDS[args.command](args)


if __name__ == '__main__':
    sys.exit(main())
