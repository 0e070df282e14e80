"""
Tests for the addendum page parser.
"""

import unittest
from unittest.mock import MagicMock

import pytest
import requests

from orderdoc.document_processor.extractors.addendum import (
    fetch_and_parse_addendum,
    fetch_and_parse_addendums,
    parse_addendum,
    parse_addendum_rows,
)
from orderdoc.document_processor.html_nodes import document_root
from orderdoc.document_processor.interfaces import AddendumParseError
from orderdoc.document_processor.models import LineItem, Subcategory

URL_1 = "https://l1.prodbx.com/go/view/?35590.426.20251201090000"
URL_2 = "https://l1.prodbx.com/go/view/?35591.426.20251202090000"


def _session(*bodies):
    """A requests session whose get() answers with the given bodies in turn."""
    session = MagicMock(spec=requests.Session)
    responses = []
    for body in bodies:
        if isinstance(body, Exception):
            responses.append(body)
            continue
        response = MagicMock()
        response.text = body
        response.raise_for_status.return_value = None
        responses.append(response)
    session.get.side_effect = responses
    return session


class TestParseAddendum(unittest.TestCase):
    """Test parsing of an addendum view page."""

    def test_number_falls_back_to_url_id(self):
        html = "<table class='pos'><tr><td>Extra drain</td><td>1</td><td>$300.00</td></tr></table>"
        self.assertEqual(parse_addendum(html, "35590", URL_1).addendum_number, "35590")

    def test_first_table_used_without_pos_class(self):
        html = "<table><tr><td>Extra drain</td><td>1</td><td>$300.00</td></tr></table>"
        with self.assertLogs('orderdoc.document_processor.extractors.addendum', level='WARNING'):
            addendum = parse_addendum(html, "35590", URL_1)
        self.assertEqual(len(addendum.items), 1)

    def test_no_table(self):
        with self.assertRaises(AddendumParseError):
            parse_addendum("<p>Nothing</p>", "35590", URL_1)

    def test_no_items(self):
        html = "<table class='pos'><tr><td>Grand Total</td><td></td><td>$0.00</td></tr></table>"
        with self.assertRaises(AddendumParseError):
            parse_addendum(html, "35590", URL_1)


def test_addendum_page_items(addendum_html):
    addendum = parse_addendum(addendum_html, "35590", URL_1)

    assert addendum.addendum_number == "2"
    assert addendum.url_id == "35590"
    assert addendum.url == URL_1
    assert addendum.items == [
        Subcategory(label="Plumbing"),
        LineItem("Extra drain", 2.0, 150.0, 300.0, "0200 Calimingo - Pool", "Plumbing"),
        LineItem("Remove light", 1.0, -150.0, -150.0, "0200 Calimingo - Pool", "Plumbing"),
    ]


def test_new_category_closes_subcategory():
    rows = document_root(
        "<table>"
        "<tr class='ssg_title'><td>Plumbing</td></tr>"
        "<tr><td><b>0300 Calimingo - Deck</b></td><td>1</td><td>$1.00</td></tr>"
        "<tr><td>Deck sealer</td><td>1</td><td>$40.00</td></tr>"
        "</table>"
    ).find_nested('table').rows()

    items = parse_addendum_rows(rows)
    assert items[-1] == LineItem("Deck sealer", 1.0, 40.0, 40.0, "0300 Calimingo - Deck", None)


def test_fetch_and_parse(addendum_html):
    session = _session(addendum_html)
    addendum = fetch_and_parse_addendum(URL_1, session=session)

    assert addendum.addendum_number == "2"
    session.get.assert_called_once()
    assert session.get.call_args[0][0] == URL_1


def test_fetch_rejects_foreign_url():
    with pytest.raises(AddendumParseError, match="Invalid addendum URL"):
        fetch_and_parse_addendum("https://example.com/view/?1.2.3")


def test_fetch_many_skips_failures(addendum_html):
    session = _session(requests.exceptions.ConnectionError("refused"), addendum_html)
    results = fetch_and_parse_addendums([URL_1, URL_2], session=session)

    assert [result.url for result in results] == [URL_2]


def test_fetch_many_fails_when_all_fail():
    session = _session(requests.exceptions.Timeout(), requests.exceptions.Timeout())
    with pytest.raises(AddendumParseError, match="All addendum URLs failed"):
        fetch_and_parse_addendums([URL_1, URL_2], session=session)


def test_fetch_many_with_no_urls():
    assert fetch_and_parse_addendums([]) == []
