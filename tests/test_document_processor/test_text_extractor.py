"""
Tests for the text field extractor.
"""

import unittest

from orderdoc.document_processor.extractors.text import (
    LocationExtractor,
    build_field_patterns,
    clean_field_value,
    extract_location,
    parse_flag,
)
from orderdoc.document_processor.models import Location


class TestLocationExtractor(unittest.TestCase):
    """Test field extraction from the text view of an order."""

    def setUp(self):
        self.extractor = LocationExtractor()

    def test_emphasis_style_fields(self):
        """Fields written as *Label:*value, with an empty one left absent."""
        location = self.extractor.extract_location("*Order Id:*6400\n*Order Po:*\n*Client:*Jane Doe")

        self.assertEqual(location.order_no, "6400")
        self.assertIsNone(location.order_po)
        self.assertEqual(location.client_name, "Jane Doe")

    def test_plain_style_fields(self):
        text = "Order Id: 7100\nClient: Acme Builders\nAddress: 400 Shore Dr\nCity: Newport Beach\nState: CA\nZip: 92660"
        location = self.extractor.extract_location(text)

        self.assertEqual(location.order_no, "7100")
        self.assertEqual(location.client_name, "Acme Builders")
        self.assertEqual(location.street_address, "400 Shore Dr")
        self.assertEqual(location.city, "Newport Beach")
        self.assertEqual(location.state, "CA")
        self.assertEqual(location.zip, "92660")

    def test_emphasis_variants(self):
        self.assertEqual(self.extractor.extract_location("*Client: Jane Doe").client_name, "Jane Doe")
        self.assertEqual(self.extractor.extract_location("*Client*:Jane Doe").client_name, "Jane Doe")
        self.assertEqual(self.extractor.extract_location("*Client:*  Jane Doe  ").client_name, "Jane Doe")

    def test_first_pattern_wins(self):
        """The emphasis form takes precedence over a later plain label."""
        location = self.extractor.extract_location("Client: Someone Else\n*Client:*Jane Doe")
        self.assertEqual(location.client_name, "Jane Doe")

    def test_labels_are_case_insensitive(self):
        location = self.extractor.extract_location("ORDER ID: 42\nclient: Jane Doe")
        self.assertEqual(location.order_no, "42")
        self.assertEqual(location.client_name, "Jane Doe")

    def test_fullwidth_colon(self):
        location = self.extractor.extract_location("Client：Jane Doe")
        self.assertEqual(location.client_name, "Jane Doe")

    def test_value_stops_at_line_end(self):
        location = self.extractor.extract_location("*City:*Irvine\r\n*State:*CA\r\n")
        self.assertEqual(location.city, "Irvine")
        self.assertEqual(location.state, "CA")

    def test_label_inside_longer_word_is_ignored(self):
        location = self.extractor.extract_location("IPAddress: 10.0.0.1\nAddress: 12 Palm Way")
        self.assertEqual(location.street_address, "12 Palm Way")

    def test_numeric_fields(self):
        text = "*Order Grand Total:*$12,500.00\n*Balance Due:*$0.00"
        location = self.extractor.extract_location(text)

        self.assertEqual(location.order_grand_total, 12500.0)
        self.assertEqual(location.balance_due, 0.0)

    def test_zero_grand_total_is_absent(self):
        location = self.extractor.extract_location("*Client:*Jane\n*Order Grand Total:*$0.00")
        self.assertIsNone(location.order_grand_total)

    def test_unreadable_amounts_are_absent(self):
        location = self.extractor.extract_location("*Client:*Jane\n*Order Grand Total:*TBD\n*Balance Due:*-5")
        self.assertIsNone(location.order_grand_total)
        self.assertIsNone(location.balance_due)

    def test_delivered_flag(self):
        self.assertTrue(self.extractor.extract_location("*Client:*J\n*Order Delivered:*Yes").order_delivered)
        self.assertFalse(self.extractor.extract_location("*Client:*J\n*Order Delivered:*0").order_delivered)
        self.assertIsNone(self.extractor.extract_location("*Client:*J\n*Order Delivered:*maybe").order_delivered)

    def test_empty_text_returns_empty_location(self):
        for text in (None, "", "   \n "):
            location = self.extractor.extract_location(text)
            self.assertEqual(location, Location())
            self.assertEqual(location.order_no, "")

    def test_missing_identity_logs_warning(self):
        with self.assertLogs('orderdoc.document_processor.extractors.text', level='WARNING') as logs:
            location = self.extractor.extract_location("Order Id: 9\nnothing else here")

        self.assertEqual(location.order_no, "9")
        self.assertTrue(any("Text sample" in line for line in logs.output))

    def test_custom_labels(self):
        extractor = LocationExtractor(field_labels={'order_no': 'Job Number'})
        self.assertEqual(extractor.extract_location("*Job Number:*J-77\n*Client:*X").order_no, "J-77")


def test_full_legacy_text(legacy_text):
    location = extract_location(legacy_text)

    assert location.order_no == "6400"
    assert location.dbx_customer_id == "C-1001"
    assert location.client_name == "Jane Doe"
    assert location.street_address == "12 Palm Way"
    assert location.email == "jane@example.com"
    assert location.order_date == "01/02/2025"
    assert location.order_po is None
    assert location.order_delivered is False
    assert location.order_grand_total == 8500.0
    assert location.balance_due == 0.0
    assert location.sales_rep == "Sam Lee"
    assert location.phone is None


def test_location_to_dict_uses_camel_case(legacy_text):
    data = extract_location(legacy_text).to_dict()

    assert data['orderNo'] == "6400"
    assert data['orderGrandTotal'] == 8500.0
    assert 'orderPO' not in data
    assert 'phone' not in data


def test_build_field_patterns_precedence():
    patterns = build_field_patterns("Order Id")
    assert len(patterns) == 5
    assert patterns[0].search("*Order Id:*6400").group(1) == "6400"
    assert patterns[4].search("Order Id: 6400").group(1) == "6400"


def test_clean_field_value():
    assert clean_field_value(" *6400* ") == "6400"
    assert clean_field_value(" ** ") is None
    assert clean_field_value(None) is None


def test_parse_flag():
    assert parse_flag("true") is True
    assert parse_flag("NO") is False
    assert parse_flag(None) is None
