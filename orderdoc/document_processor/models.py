"""
Data model for parsed order documents.

A parse produces one Location record (from the text view of the document)
and an ordered sequence of order items (from the HTML view). Order items are
a closed sum type of MainCategory, Subcategory and LineItem.
"""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict


class Location(BaseModel):
    """Customer and order metadata extracted from an order document."""

    model_config = ConfigDict(frozen=True)

    order_no: str = ''
    street_address: str = ''
    city: str = ''
    state: str = ''
    zip: str = ''
    client_name: Optional[str] = None
    dbx_customer_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    order_date: Optional[str] = None
    order_po: Optional[str] = None
    order_due_date: Optional[str] = None
    order_type: Optional[str] = None
    order_delivered: Optional[bool] = None
    quote_expiration_date: Optional[str] = None
    order_grand_total: Optional[float] = None
    progress_payments: Optional[str] = None
    balance_due: Optional[float] = None
    sales_rep: Optional[str] = None

    _LEGACY_NAMES: ClassVar[Dict[str, str]] = {
        'order_no': 'orderNo',
        'street_address': 'streetAddress',
        'city': 'city',
        'state': 'state',
        'zip': 'zip',
        'client_name': 'clientName',
        'dbx_customer_id': 'dbxCustomerId',
        'email': 'email',
        'phone': 'phone',
        'order_date': 'orderDate',
        'order_po': 'orderPO',
        'order_due_date': 'orderDueDate',
        'order_type': 'orderType',
        'order_delivered': 'orderDelivered',
        'quote_expiration_date': 'quoteExpirationDate',
        'order_grand_total': 'orderGrandTotal',
        'progress_payments': 'progressPayments',
        'balance_due': 'balanceDue',
        'sales_rep': 'salesRep',
    }

    @property
    def has_identity(self) -> bool:
        """True when a client name, customer id or street address was found."""
        return bool(self.client_name or self.dbx_customer_id or self.street_address)

    def to_dict(self) -> Dict[str, Any]:
        """Render with the camelCase names used by the storage and spreadsheet code."""
        return {
            legacy: getattr(self, name)
            for name, legacy in self._LEGACY_NAMES.items()
            if getattr(self, name) is not None
        }


@dataclass(frozen=True)
class MainCategory:
    """Top-level section header; label always ends with a colon."""

    kind: ClassVar[str] = 'maincategory'
    label: str


@dataclass(frozen=True)
class Subcategory:
    """Section header nested under the most recent main category."""

    kind: ClassVar[str] = 'subcategory'
    label: str


@dataclass(frozen=True)
class LineItem:
    """A priced row tagged with the categories in effect when it was read."""

    kind: ClassVar[str] = 'item'
    label: str
    quantity: float
    unit_rate: float
    amount: float
    main_category: Optional[str] = None
    sub_category: Optional[str] = None


OrderItem = Union[MainCategory, Subcategory, LineItem]


def item_to_dict(item: OrderItem) -> Dict[str, Any]:
    """
    Render an order item in the legacy flat shape.

    Category rows keep empty-string placeholders for qty/rate/amount, which is
    what the spreadsheet template and the approval screens expect.

    Args:
        item: Order item

    Returns:
        Dictionary with type, productService, qty, rate, amount,
        mainCategory and subCategory keys
    """
    if isinstance(item, LineItem):
        return {
            'type': item.kind,
            'productService': item.label,
            'qty': item.quantity,
            'rate': item.unit_rate,
            'amount': item.amount,
            'mainCategory': item.main_category,
            'subCategory': item.sub_category,
        }
    return {
        'type': item.kind,
        'productService': item.label,
        'qty': '',
        'rate': '',
        'amount': '',
    }


@dataclass(frozen=True)
class AddendumBlock:
    """An addendum payment found in a nested progress-payments table."""

    addendum_number: str
    amount: float

    @property
    def name(self) -> str:
        return f"Addendum #{self.addendum_number}"

    def to_items(self) -> List[OrderItem]:
        """Materialize as a synthetic main category followed by its single line item."""
        category = f"{self.name}:"
        return [
            MainCategory(label=category),
            LineItem(
                label=self.name,
                quantity=1.0,
                unit_rate=self.amount,
                amount=self.amount,
                main_category=category,
            ),
        ]


@dataclass
class AddendumData:
    """Items parsed from one addendum view page."""

    addendum_number: str
    items: List[OrderItem]
    url: str
    url_id: Optional[str] = None


@dataclass
class ParsedEmail:
    """The html/text pair handed to the parser, plus envelope details."""

    html: str = ''
    text: str = ''
    subject: Optional[str] = None
    sender: Optional[str] = None
    date: Optional[datetime] = None


@dataclass
class ContractLinks:
    """Partner view links found in an order email."""

    original_contract_url: Optional[str] = None
    addendum_urls: List[str] = field(default_factory=list)
