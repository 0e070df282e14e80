"""
Pytest fixtures shared by the order document tests.
"""

import os

import pytest

from orderdoc.config import reset_config
from orderdoc.document_processor.html_nodes import document_root


LEGACY_ORDER_HTML = """
<html><body>
<table class="header"><tr><td>Order Confirmation</td></tr></table>
<table class="pos">
  <tr><th>DESCRIPTION</th><th>QTY</th><th>EXTENDED</th></tr>
  <tr>
    <td><strong>0110 Calimingo - Pavers</strong><br><em>Entry walk</em></td>
    <td>1</td><td>$5,300.00</td>
  </tr>
  <tr class="ssg_title"><td>Demolition</td><td></td><td></td></tr>
  <tr><td style="padding-left:30px">Remove existing concrete</td><td>162 SF</td><td>$1,620.00</td></tr>
  <tr><td style="padding-left:30px">Haul away</td><td>1 EA</td><td>$180.00</td></tr>
  <tr class="ssg_title"><td>Installation</td><td></td><td></td></tr>
  <tr><td style="padding-left:30px">Install pavers</td><td>3</td><td>$150.00</td><td>$450.00</td></tr>
  <tr><td style="padding-left:30px">Sealer</td><td>0 SF</td><td>$3,050.00</td></tr>
  <tr><td>Subtotal</td><td></td><td>$5,300.00</td></tr>
  <tr><td><strong>0200 Calimingo - Permits</strong></td><td>1</td><td>$700.00</td></tr>
  <tr><td>Subtotal</td><td></td><td>$700.00</td></tr>
  <tr><td>Note: colors may vary</td><td></td><td></td></tr>
  <tr><td>Tax</td><td></td><td>$0.00</td></tr>
  <tr><td>Grand Total</td><td></td><td>$8,500.00</td></tr>
  <tr>
    <td colspan="3">
      <table>
        <tr><td>Phase</td><td>Completed</td><td>Amt Paid</td></tr>
        <tr><td>Addendum #3</td><td>01/15/2025</td><td>$2,500.00</td></tr>
      </table>
    </td>
  </tr>
  <tr><td style="padding-left:30px">After the progress table</td><td>1</td><td>$99.00</td></tr>
</table>
</body></html>
"""

LEGACY_ORDER_TEXT = (
    "*Order Id:*6400\r\n"
    "*DBX Customer Id:*C-1001\r\n"
    "*Client:*Jane Doe\r\n"
    "*Address:*12 Palm Way\r\n"
    "*City:*Irvine\r\n"
    "*State:*CA\r\n"
    "*Zip:*92618\r\n"
    "*Email:*jane@example.com\r\n"
    "*Order Date:*01/02/2025\r\n"
    "*Order Po:*\r\n"
    "*Order Delivered:*no\r\n"
    "*Order Grand Total:*$8,500.00\r\n"
    "*Balance Due:*$0.00\r\n"
    "*Sales Rep:*Sam Lee\r\n"
)

MODERN_ORDER_HTML = """
<html><body>
<table class="items">
  <tr><td>Description</td><td>Qty</td><td>Extended</td></tr>
  <tr>
    <td style="border-top: solid 1px #666; padding: 4px">0300 Calimingo - Pool Equipment<br><em>Backyard</em></td>
    <td>1</td><td>$2,400.00</td>
  </tr>
  <tr>
    <td></td>
    <td style="border-top: solid 1px #bbb; letter-spacing: 2px"><strong>PUMPS</strong></td>
  </tr>
  <tr><td style="padding-left: 30px">Variable speed pump</td><td>2 EA</td><td>$2,400.00</td></tr>
  <tr><td>Subtotal:</td><td></td><td>$2,400.00</td></tr>
</table>
</body></html>
"""

MODERN_ORDER_TEXT = (
    "Order Id: 7100\n"
    "Client: Acme Builders\n"
    "Address: 400 Shore Dr\n"
    "City: Newport Beach\n"
    "State: CA\n"
    "Zip: 92660\n"
    "Order Grand Total: $2,400.00\n"
)

ADDENDUM_PAGE_HTML = """
<html><body>
<h2>Addendum #: 2</h2>
<table class="pos">
  <tr><td>DESCRIPTION</td><td>QTY</td><td>EXTENDED</td></tr>
  <tr><td><b>0200 Calimingo - Pool</b></td><td>1</td><td>$150.00</td></tr>
  <tr class="ssg_title"><td>Plumbing</td></tr>
  <tr><td>Extra drain</td><td>2 EA</td><td>$300.00</td></tr>
  <tr><td>Remove light</td><td>1</td><td>-$150.00</td></tr>
  <tr><td>Grand Total</td><td></td><td>$150.00</td></tr>
</table>
</body></html>
"""

ORDER_EMAIL_HTML = """
<html><body>
<p><strong>Original Contract:</strong>
<a href="https://l1.prodbx.com/go/view/?35587.426.20251112100816">View contract</a></p>
<p><strong>Addendums:</strong>
<a href="https://l1.prodbx.com/go/view/?35590.426.20251201090000">Addendum 1</a>
<a href="https://l1.prodbx.com/go/view/?35587.426.20251112100816">View contract</a>
<a href="https://l1.prodbx.com/go/view/?35591.426.20251202090000">Addendum 2</a></p>
</body></html>
"""


def table_rows(html):
    """Rows of the first table in an HTML fragment."""
    return document_root(html).find_nested('table').rows()


def single_row(row_html):
    """Wrap a <tr> fragment in a table and return its node."""
    return table_rows(f"<table>{row_html}</table>")[0]


def build_eml(html=None, text=None, subject='Order Confirmation 6400'):
    """Build a multipart/alternative message as raw bytes."""
    from email.message import EmailMessage

    message = EmailMessage()
    message['Subject'] = subject
    message['From'] = 'orders@example.com'
    message['To'] = 'office@example.com'
    message['Date'] = 'Thu, 02 Jan 2025 10:00:00 -0800'
    message.set_content(text or 'See the HTML version of this message.')
    if html is not None:
        message.add_alternative(html, subtype='html')
    return message.as_bytes()


@pytest.fixture(autouse=True)
def clean_config(monkeypatch, tmp_path):
    """Isolate tests from config files and ORDERDOC_* variables on the host."""
    for name in list(os.environ):
        if name.startswith('ORDERDOC_'):
            monkeypatch.delenv(name)
    monkeypatch.setenv('HOME', str(tmp_path))
    monkeypatch.chdir(tmp_path)
    reset_config()
    yield
    reset_config()


@pytest.fixture
def legacy_html():
    return LEGACY_ORDER_HTML


@pytest.fixture
def legacy_text():
    return LEGACY_ORDER_TEXT


@pytest.fixture
def modern_html():
    return MODERN_ORDER_HTML


@pytest.fixture
def modern_text():
    return MODERN_ORDER_TEXT


@pytest.fixture
def addendum_html():
    return ADDENDUM_PAGE_HTML


@pytest.fixture
def order_email_html():
    return ORDER_EMAIL_HTML


@pytest.fixture
def order_eml_file(tmp_path):
    """An .eml file carrying the legacy order."""
    path = tmp_path / 'order.eml'
    path.write_bytes(build_eml(html=LEGACY_ORDER_HTML, text=LEGACY_ORDER_TEXT))
    return path


@pytest.fixture
def order_html_file(tmp_path):
    """A saved view page with the modern order and its labels."""
    path = tmp_path / 'order.html'
    body = MODERN_ORDER_TEXT.replace('\n', '<br>\n')
    path.write_text(MODERN_ORDER_HTML.replace('<body>', f'<body><p>{body}</p>'), encoding='utf-8')
    return path


@pytest.fixture
def make_row():
    """Factory turning a <tr> fragment into a row node."""
    return single_row


@pytest.fixture
def make_rows():
    """Factory returning the rows of the first table in a fragment."""
    return table_rows


@pytest.fixture
def make_eml():
    """Factory building raw .eml bytes from html/text bodies."""
    return build_eml
