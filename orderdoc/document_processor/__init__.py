"""
Document processor package.
"""
from orderdoc.document_processor.interfaces import (
    AddendumParseError,
    HtmlNode,
    OrderDocumentError,
    OrderTableNotFoundError,
    SourceError,
)
from orderdoc.document_processor.models import (
    AddendumBlock,
    AddendumData,
    ContractLinks,
    LineItem,
    Location,
    MainCategory,
    OrderItem,
    ParsedEmail,
    Subcategory,
    item_to_dict,
)
from orderdoc.document_processor.extractors.text import LocationExtractor, extract_location
from orderdoc.document_processor.extractors.html import OrderItemsExtractor, extract_order_items

__all__ = [
    'AddendumParseError',
    'HtmlNode',
    'OrderDocumentError',
    'OrderTableNotFoundError',
    'SourceError',
    'AddendumBlock',
    'AddendumData',
    'ContractLinks',
    'LineItem',
    'Location',
    'MainCategory',
    'OrderItem',
    'ParsedEmail',
    'Subcategory',
    'item_to_dict',
    'LocationExtractor',
    'extract_location',
    'OrderItemsExtractor',
    'extract_order_items',
]
