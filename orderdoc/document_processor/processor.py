"""
Order document processor module.

Runs the text field extractor, the order items parser and the totals
reconciler over one order document, whichever source it came from.
"""
from pathlib import Path
from typing import Any, Dict, List, Optional, Union
import logging

import requests

from orderdoc.config import get_config
from orderdoc.document_processor.extractors.html import OrderItemsExtractor
from orderdoc.document_processor.extractors.text import LocationExtractor
from orderdoc.document_processor.models import (
    LineItem,
    Location,
    MainCategory,
    OrderItem,
    Subcategory,
    item_to_dict,
)
from orderdoc.document_processor.sources import (
    DEFAULT_TIMEOUT,
    DEFAULT_USER_AGENT,
    fetch_view_html,
    html_to_text,
    load_eml,
)
from orderdoc.financial_analysis.reconciliation import ReconciliationResult, TotalsReconciler

logger = logging.getLogger(__name__)


class ProcessingResult:
    """Container for order document processing results."""

    def __init__(
        self,
        success: bool,
        location: Optional[Location] = None,
        items: Optional[List[OrderItem]] = None,
        reconciliation: Optional[ReconciliationResult] = None,
        metadata: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None
    ):
        self.success = success
        self.location = location
        self.items = items or []
        self.reconciliation = reconciliation
        self.metadata = metadata or {}
        self.error = error

    @property
    def line_items(self) -> List[LineItem]:
        return [item for item in self.items if isinstance(item, LineItem)]

    def to_dict(self) -> Dict[str, Any]:
        """Render as plain JSON-compatible data."""
        return {
            'success': self.success,
            'location': self.location.to_dict() if self.location else None,
            'items': [item_to_dict(item) for item in self.items],
            'validation': self.reconciliation.to_dict() if self.reconciliation else None,
            'metadata': self.metadata,
            'error': self.error,
        }


def count_items(items: List[OrderItem]) -> Dict[str, int]:
    """Count main categories, subcategories and line items."""
    return {
        'main_categories': sum(1 for item in items if isinstance(item, MainCategory)),
        'subcategories': sum(1 for item in items if isinstance(item, Subcategory)),
        'line_items': sum(1 for item in items if isinstance(item, LineItem)),
    }


class OrderDocumentProcessor:
    """
    Main processor that turns an order document into a Location record,
    an order item list and a reconciliation verdict.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, session: Optional[requests.Session] = None):
        """
        Initialize the processor.

        Args:
            config: Full configuration dictionary; defaults to the global configuration
            session: Optional requests session used for view links
        """
        self.config = config or get_config()
        self.session = session

        sources = self.config.get('sources', {})
        self.fetch_timeout = sources.get('fetch_timeout', DEFAULT_TIMEOUT)
        self.user_agent = sources.get('user_agent', DEFAULT_USER_AGENT)

        self.location_extractor = LocationExtractor()
        self.items_extractor = OrderItemsExtractor(self.config.get('parser', {}))
        self.reconciler = TotalsReconciler(self.config.get('reconciliation', {}))

    def process(self, html: str, text: str, **metadata) -> ProcessingResult:
        """
        Process one order document.

        Args:
            html: HTML body of the document
            text: Plain-text body of the document
            **metadata: Extra values copied into the result metadata

        Returns:
            ProcessingResult; failures are reported through ``success``/``error``
        """
        try:
            location = self.location_extractor.extract_location(text)
            items = self.items_extractor.extract_items(html)
            reconciliation = self.reconciler.reconcile(items, location.order_grand_total)

            if not reconciliation.is_valid:
                logger.warning(f"Totals check failed for order {location.order_no or '(unknown)'}: "
                               f"{reconciliation.message}")

            metadata.update(count_items(items))
            return ProcessingResult(
                success=True,
                location=location,
                items=items,
                reconciliation=reconciliation,
                metadata=metadata,
            )

        except Exception as e:
            logger.exception(f"Error processing order document: {str(e)}")
            return ProcessingResult(
                success=False,
                metadata=metadata,
                error=f"Error processing order document: {str(e)}"
            )

    def process_email(self, file_path: Union[str, Path]) -> ProcessingResult:
        """
        Process an order confirmation saved as an .eml file.

        Args:
            file_path: Path to the email file

        Returns:
            ProcessingResult
        """
        logger.info(f"Processing order email: {file_path}")
        try:
            parsed = load_eml(file_path)
        except Exception as e:
            logger.exception(f"Error reading order email: {str(e)}")
            return ProcessingResult(success=False, error=str(e))

        return self.process(
            parsed.html,
            parsed.text,
            source=str(file_path),
            subject=parsed.subject,
        )

    def process_html_file(self, file_path: Union[str, Path]) -> ProcessingResult:
        """
        Process an order document saved as an HTML page.

        Args:
            file_path: Path to the HTML file

        Returns:
            ProcessingResult
        """
        logger.info(f"Processing order HTML file: {file_path}")
        try:
            html = Path(file_path).read_text(encoding='utf-8', errors='replace')
        except OSError as e:
            logger.exception(f"Error reading HTML file: {str(e)}")
            return ProcessingResult(success=False, error=str(e))

        return self.process(html, html_to_text(html), source=str(file_path))

    def process_file(self, file_path: Union[str, Path]) -> ProcessingResult:
        """Dispatch on extension: .eml files are emails, anything else is HTML."""
        if Path(file_path).suffix.lower() == '.eml':
            return self.process_email(file_path)
        return self.process_html_file(file_path)

    def process_url(self, url: str) -> ProcessingResult:
        """
        Process a partner view page.

        Args:
            url: View link

        Returns:
            ProcessingResult
        """
        logger.info(f"Processing order view page: {url}")
        try:
            html = fetch_view_html(
                url,
                timeout=self.fetch_timeout,
                session=self.session,
                user_agent=self.user_agent,
            )
        except Exception as e:
            logger.exception(f"Error fetching view page: {str(e)}")
            return ProcessingResult(success=False, error=str(e))

        return self.process(html, html_to_text(html), source=url)
