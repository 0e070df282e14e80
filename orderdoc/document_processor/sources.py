"""
Document sources for the order parser.

Order documents reach the parser either as an emailed confirmation (.eml) or
as the HTML body of a partner "view" page. This module turns both into the
html/text pair the extractors consume, and finds the view links an order
email points to (the original contract and its addenda).
"""
import base64
import binascii
import email
import logging
import re
from email import policy
from email.utils import parsedate_to_datetime
from pathlib import Path
from typing import List, Optional, Union
from urllib.parse import unquote, urlparse

import requests
from bs4 import BeautifulSoup

from orderdoc.document_processor.interfaces import SourceError
from orderdoc.document_processor.models import ContractLinks, ParsedEmail

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30
DEFAULT_USER_AGENT = 'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36'

VIEW_URL_RE = re.compile(r'^https?://(l1|login)\.prodbx\.com/go/view/\?', re.IGNORECASE)
_VIEW_URL_SEARCH_RE = re.compile(r'https?://(?:l1|login)\.prodbx\.com/go/view/\?[^\s"<>/]+', re.IGNORECASE)
_ENCODED_VIEW_RE = re.compile(r'l1\.prodbx\.com%2Fgo%2Fview%2F%3F([^%/]+)', re.IGNORECASE)
_TRACKING_URL_RE = re.compile(r'https?://track\.pstmrk\.it/[^\s"<>]+', re.IGNORECASE)
# base64 of "https://l1.prodbx.com"
_BASE64_VIEW_MARKER = 'aHR0cHM6Ly9sMS5wcm9kYnguY29t'
_TRAILING_PUNCTUATION_RE = re.compile(r'[.,;!?]+$')


def validate_view_url(url: Optional[str]) -> bool:
    """Check for a partner view link such as https://l1.prodbx.com/go/view/?35587.426.2025..."""
    if not url:
        return False
    return bool(VIEW_URL_RE.match(url.strip()))


def extract_view_id(url: str) -> str:
    """
    Extract the document id from a view link.

    Example: https://l1.prodbx.com/go/view/?35587.426.20251112100816 -> "35587"

    Args:
        url: View link

    Returns:
        First dot-separated part of the query string

    Raises:
        SourceError: If the URL carries no id
    """
    query = urlparse(url).query
    view_id = query.split('.')[0].strip() if query else ''
    if view_id:
        return view_id

    match = re.search(r'[?&](\d+)\.', url)
    if match:
        return match.group(1)
    raise SourceError(f"Could not extract document id from URL: {url}")


def fetch_view_html(
    url: str,
    timeout: float = DEFAULT_TIMEOUT,
    session: Optional[requests.Session] = None,
    user_agent: str = DEFAULT_USER_AGENT,
) -> str:
    """
    Fetch the HTML body of a partner view page.

    Args:
        url: View link
        timeout: Request timeout in seconds
        session: Optional requests session to reuse
        user_agent: User-Agent header to send

    Returns:
        HTML text

    Raises:
        SourceError: If the URL is invalid, the request fails or the body is empty
    """
    if not validate_view_url(url):
        raise SourceError(f"Invalid view URL format: {url}. Expected format: https://l1.prodbx.com/go/view/?...")

    http = session or requests
    try:
        response = http.get(url, headers={'User-Agent': user_agent}, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.Timeout as e:
        raise SourceError(f"Timeout while fetching view URL: {url}") from e
    except requests.exceptions.RequestException as e:
        raise SourceError(f"Failed to fetch view URL {url}: {str(e)}") from e

    html = response.text
    if not html or not html.strip():
        raise SourceError(f"Empty HTML content received from {url}")
    return html


def html_to_text(html: str) -> str:
    """Plain-text view of an HTML page, one line per block."""
    soup = BeautifulSoup(html or '', 'html5lib')
    for br in soup.find_all('br'):
        br.replace_with('\n')
    return soup.get_text('\n')


def load_eml(source: Union[str, Path, bytes]) -> ParsedEmail:
    """
    Read an .eml file into its html/text bodies.

    Args:
        source: Path to the file, or the raw message bytes

    Returns:
        ParsedEmail

    Raises:
        SourceError: If the file cannot be read
    """
    try:
        if isinstance(source, bytes):
            raw = source
        else:
            with open(source, 'rb') as f:
                raw = f.read()
        message = email.message_from_bytes(raw, policy=policy.default)
    except (OSError, ValueError, TypeError) as e:
        raise SourceError(f"Failed to parse EML file: {str(e)}") from e

    html_parts = []
    text_parts = []
    for part in message.walk():
        if part.is_multipart() or part.get_content_disposition() == 'attachment':
            continue
        content_type = part.get_content_type()
        if content_type not in ('text/html', 'text/plain'):
            continue
        try:
            content = part.get_content()
        except (LookupError, UnicodeDecodeError) as e:
            logger.warning(f"Skipping undecodable {content_type} part: {str(e)}")
            continue
        if content_type == 'text/html':
            html_parts.append(content)
        else:
            text_parts.append(content)

    html = ''.join(html_parts)
    text = ''.join(text_parts)
    if not text and html:
        text = html_to_text(html)

    date = None
    if message['date']:
        try:
            date = parsedate_to_datetime(str(message['date']))
        except (TypeError, ValueError):
            logger.warning(f"Unreadable Date header: {message['date']}")

    return ParsedEmail(
        html=html,
        text=text,
        subject=str(message['subject']) if message['subject'] else None,
        sender=str(message['from']) if message['from'] else None,
        date=date,
    )


def _strip_trailing_punctuation(url: str) -> str:
    return _TRAILING_PUNCTUATION_RE.sub('', url)


def decode_tracking_url(tracking_url: str) -> Optional[str]:
    """
    Recover the view link wrapped by a click-tracking redirect.

    Handles URL-encoded payloads (track.pstmrk.it) and base64 payloads
    (``...go?l=426-427947-aHR0cHM6Ly9sMS5w...``).

    Args:
        tracking_url: Redirect URL

    Returns:
        View link, or None when none is embedded
    """
    if not tracking_url:
        return None

    if _BASE64_VIEW_MARKER in tracking_url:
        payload = tracking_url[tracking_url.index(_BASE64_VIEW_MARKER):]
        payload = re.split(r'[&/]', unquote(payload))[0]
        payload += '=' * (-len(payload) % 4)
        try:
            decoded = base64.b64decode(payload).decode('utf-8', errors='ignore')
        except (binascii.Error, ValueError):
            decoded = ''
        match = _VIEW_URL_SEARCH_RE.search(decoded)
        if match:
            return _strip_trailing_punctuation(match.group(0))

    match = _VIEW_URL_SEARCH_RE.search(unquote(tracking_url))
    if match:
        return _strip_trailing_punctuation(match.group(0))

    match = _ENCODED_VIEW_RE.search(tracking_url)
    if match:
        return f"https://l1.prodbx.com/go/view/?{unquote(match.group(1))}"
    return None


def extract_urls_from_text(text: str) -> List[str]:
    """
    Find view links in plain text, including ones behind tracking redirects.

    Args:
        text: Text to search

    Returns:
        Unique view links in order of appearance
    """
    urls = []
    for match in _VIEW_URL_SEARCH_RE.finditer(text or ''):
        urls.append(_strip_trailing_punctuation(match.group(0)))
    for match in _TRACKING_URL_RE.finditer(text or ''):
        url = decode_tracking_url(match.group(0))
        if url:
            urls.append(url)
    return [url for url in dict.fromkeys(urls) if validate_view_url(url)]


def _url_from_anchor(anchor) -> Optional[str]:
    href = anchor.get('href') or ''
    if validate_view_url(href):
        return href

    found = extract_urls_from_text(anchor.get_text(' '))
    if found:
        return found[0]
    return decode_tracking_url(href)


def _links_after_label(soup: BeautifulSoup, label: str, stop_labels) -> List[str]:
    """View links that follow a <strong> label, up to the next known label."""
    marker = None
    for strong in soup.find_all('strong'):
        if label in strong.get_text(' ').lower():
            marker = strong
            break
    if marker is None:
        return []

    urls = []
    for element in marker.find_all_next(['a', 'strong']):
        if element.name == 'strong':
            if any(stop in element.get_text(' ').lower() for stop in stop_labels):
                break
            continue
        if 'prodbx.com' not in (element.get('href') or '') and 'prodbx' not in element.get_text():
            continue
        url = _url_from_anchor(element)
        if url:
            urls.append(url)
    return urls


def extract_contract_links(parsed_email: ParsedEmail) -> ContractLinks:
    """
    Find the original contract link and addendum links in an order email.

    The HTML body is searched for the "Original Contract:" and "Addendums:"
    labels; the text body is used when the HTML yields nothing.

    Args:
        parsed_email: Parsed email

    Returns:
        ContractLinks with the original contract URL removed from the
        addendum list
    """
    links = ContractLinks()

    if parsed_email.html:
        soup = BeautifulSoup(parsed_email.html, 'html5lib')
        contract_urls = _links_after_label(soup, 'original contract', ('addendums',))
        if contract_urls:
            links.original_contract_url = contract_urls[0]
        links.addendum_urls = _links_after_label(soup, 'addendums', ('original contract',))

    if not links.original_contract_url and not links.addendum_urls and parsed_email.text:
        text = parsed_email.text
        contract_match = re.search(r'Original\s+Contract\s*:?\s*([^\n]+)', text, re.IGNORECASE)
        if contract_match:
            urls = extract_urls_from_text(contract_match.group(1))
            if urls:
                links.original_contract_url = urls[0]
        # Only the label is case-insensitive; the list ends at a blank line or a capitalized line
        addendums_match = re.search(r'(?i:addendums)\s*:?\s*([\s\S]+?)(?=\n\n|\n[A-Z]|$)', text)
        if addendums_match:
            links.addendum_urls = extract_urls_from_text(addendums_match.group(1))

    links.addendum_urls = [
        url for url in dict.fromkeys(links.addendum_urls)
        if url != links.original_contract_url
    ]
    logger.info(f"Found original contract link: {bool(links.original_contract_url)}, "
                f"{len(links.addendum_urls)} addendum link(s)")
    return links
