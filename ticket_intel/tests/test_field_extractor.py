"""
Unit tests for Field Extractor
"""
import logging

import pytest

from ticket_intel.models.schemas import ExtractedFields
from ticket_intel.services.field_extractor import (
    extract_brief_summary,
    extract_fields,
)

LABELLED_SUMMARY = (
    "- Order number: ORD-12345\n"
    "- Serial number: SN-998877\n"
    "- Product: Phone 4 Pro\n"
    "- Date of purchase: 2024-03-03\n"
    "- Reason for return: cracked screen\n"
    "- Address: 12 Baker Street, London, 10115 Berlin\n"
    "Customer wants a replacement."
)


class TestExtractFields:
    """Field extraction from generated summaries"""

    def test_labelled_summary(self):
        """Every labelled bullet is recovered"""
        fields = extract_fields(LABELLED_SUMMARY)

        assert fields.order_number == "ORD-12345"
        assert fields.serial_number == "SN-998877"
        assert fields.product == "Phone 4 Pro"
        assert fields.date_of_purchase == "2024-03-03"
        assert fields.reason_for_return == "cracked screen"
        assert fields.address == "12 Baker Street, London, 10115 Berlin"
        assert fields.brief_summary == "Customer wants a replacement."

    def test_empty_summary(self):
        """Empty input yields no fields"""
        fields = extract_fields("")

        assert fields == ExtractedFields()
        assert fields.is_empty

    def test_absent_fields_are_none(self):
        """Missing fields are None, never empty strings"""
        fields = extract_fields("Customer is happy, closing.")

        assert fields.order_number is None
        assert fields.address is None
        assert fields.brief_summary == "Customer is happy, closing."

    def test_bullets_only_logs_warning(self, caplog):
        """A summary with nothing recognisable logs a warning"""
        with caplog.at_level(logging.WARNING):
            fields = extract_fields("- thanks\n- bye")

        assert fields.is_empty
        assert "no fields" in caplog.text

    def test_deterministic(self):
        assert extract_fields(LABELLED_SUMMARY) == extract_fields(LABELLED_SUMMARY)


class TestBriefSummary:
    """Brief summary selection"""

    def test_last_non_bullet_line(self):
        text = "Intro line\n- bullet\nClosing line\n\n- trailing bullet"

        assert extract_brief_summary(text) == "Closing line"

    def test_only_bullets(self):
        assert extract_brief_summary("- a\n- b") is None


class TestFieldPatterns:
    """Each pattern of each field, from explicit label to loose prose"""

    @pytest.mark.parametrize("field,text,expected", [
        ("product", "Product: Phone 4 Pro", "Phone 4 Pro"),
        ("product", "Customer has the Phone 4.", "Phone 4"),
        ("product", "I am using a new device 4.", "device 4"),
        ("serial_number", "Serial number: SN-998877", "SN-998877"),
        ("serial_number", "- SN: XY-12345", "XY-12345"),
        ("serial_number", "Device IMEI 356938035643809 reported.", "356938035643809"),
        ("date_of_purchase", "Date of purchase: 2024-03-03", "2024-03-03"),
        ("date_of_purchase", "Customer bought it on March 3rd, screen cracked.", "March 3rd"),
        ("date_of_purchase", "Device purchased in January 2023.", "January 2023"),
        ("date_of_purchase", "Screen has flickered since March 2023.", "March 2023"),
        ("reason_for_return", "Reason for return: cracked screen", "cracked screen"),
        ("reason_for_return", "The issue is a cracked screen.", "a cracked screen"),
        ("reason_for_return", "Customer complaint: noisy fan.", "noisy fan"),
        ("address", "Address: 12 Baker Street, London, 10115 Berlin", "12 Baker Street, London, 10115 Berlin"),
        ("address", "Shipping to: 5 Elm Road, Springfield, 62704 IL", "5 Elm Road, Springfield, 62704 IL"),
        ("address", "Delivery to: 8 Oak Lane, Leeds, 40100 UK", "8 Oak Lane, Leeds, 40100 UK"),
        ("order_number", "Order number: ORD-12345", "ORD-12345"),
        ("order_number", "#ORD-55555 was shipped", "55555"),
        ("order_number", "Your order is 77-AB", "77-AB"),
    ])
    def test_pattern(self, field, text, expected):
        assert getattr(extract_fields(text), field) == expected

    @pytest.mark.parametrize("field,text,expected", [
        ("reason_for_return", "The issue is a cracked screen.\nReason for return: water damage", "water damage"),
        ("date_of_purchase", "Bought it on March 3rd.\nDate of purchase: 2024-03-01", "2024-03-01"),
        ("serial_number", "Device IMEI 356938035643809.\nSerial number: AB-778899", "AB-778899"),
    ])
    def test_label_wins_over_phrase(self, field, text, expected):
        """An explicit label is preferred even when a prose phrase appears first"""
        assert getattr(extract_fields(text), field) == expected

    def test_ordered_verb_is_not_an_order_number(self):
        fields = extract_fields("The customer ordered a Phone 4 last week.\nThey want a refund.")

        assert fields.order_number is None
