"""
Unit tests for Pattern Extractor

Tests:
- IMEI detection without phone false positives
- Context-anchored phone numbers excluded from IMEIs and serials
- Labelled and standalone serial numbers
- Email and address detection (context phrase and line scan)
- Determinism on empty input
"""
import pytest

from ticket_intel.models.schemas import PatternMatches
from ticket_intel.services.pattern_extractor import (
    extract_addresses,
    extract_patterns,
)


class TestImeiAndPhones:
    """IMEIs and phone numbers must not be confused"""

    def test_labelled_imei_is_not_a_phone(self):
        """A bare 15-digit IMEI is reported once and never as a phone"""
        result = extract_patterns("IMEI: 356938035643809")

        assert result.imeis == {"356938035643809"}
        assert result.phones == set()
        assert result.serial_numbers == set()

    def test_context_phone_detected(self):
        """Phone introduced by 'call me at' is captured verbatim"""
        result = extract_patterns("Please call me at +44 7911 123456 about the repair.")

        assert result.phones == {"+44 7911 123456"}

    def test_context_phone_not_reported_as_serial(self):
        """Digit groups of a context phone are excluded from serials"""
        result = extract_patterns("Please call me at +44 7911 123456 about the repair.")

        assert result.serial_numbers == set()
        assert result.imeis == set()

    def test_bare_phone_fallback(self):
        """Without a context phrase the digit-grouping pattern is used"""
        result = extract_patterns("Reach the shop on weekdays: 0301 234 5678")

        assert "0301 234 5678" in result.phones

    def test_bare_phone_not_reported_as_serial(self):
        """A digit-grouped phone without a context phrase is only a phone"""
        result = extract_patterns("Please reach me on 0612 3456 7890 tomorrow")

        assert result.phones == {"0612 3456 7890"}
        assert result.serial_numbers == set()
        assert result.phones.isdisjoint(result.serial_numbers)

    def test_my_number_is_phrase(self):
        """'my number is' anchors a phone number"""
        result = extract_patterns("my number is 555-123-4567")

        assert result.phones == {"555-123-4567"}


class TestSerialNumbers:
    """Serial number detection"""

    def test_labelled_serial(self):
        """'Serial number:' label captures the hyphenated block"""
        result = extract_patterns("Serial number: AB12-CD34-EF56.")

        assert result.serial_numbers == {"AB12-CD34-EF56"}

    def test_standalone_serial_shape(self):
        """Uppercase blocks are detected without a label"""
        result = extract_patterns("Box label reads QX77 LM88 ZZ90 on the side")

        assert "QX77 LM88 ZZ90" in result.serial_numbers

    def test_short_tokens_ignored(self):
        """Lowercase words and short blocks are not serials"""
        result = extract_patterns("the device is broken")

        assert result.serial_numbers == set()


class TestEmails:
    """Email detection"""

    def test_emails_deduplicated(self):
        """Repeated addresses are reported once"""
        text = "Write to anna@example.com or anna@example.com, cc bob.smith@mail.example.org"

        result = extract_patterns(text)

        assert result.emails == {"anna@example.com", "bob.smith@mail.example.org"}


class TestAddresses:
    """Address detection"""

    def test_context_phrase_address(self):
        """'shipping address is' captures the comma-separated address"""
        result = extract_patterns("My shipping address is 12 Baker Street, London, NW1 6XE.")

        assert result.addresses == {"12 Baker Street, London, NW1 6XE"}

    def test_line_scan_fallback_includes_neighbours(self):
        """A postal-code line with a street keyword pulls in two lines each side"""
        text = (
            "Hi team\n"
            "My replacement should go to\n"
            "Anna Schmidt\n"
            "42 Elm Road 10115\n"
            "Berlin\n"
            "Thanks"
        )

        addresses = extract_addresses(text)

        assert addresses == {
            "My replacement should go to, Anna Schmidt, 42 Elm Road 10115, Berlin, Thanks"
        }

    def test_no_address(self):
        """Plain text without postal codes has no address"""
        assert extract_addresses("The screen flickers when I open the camera app") == set()


class TestEdgeCases:
    """Empty and repeated input"""

    @pytest.mark.parametrize("text", ["", None])
    def test_empty_text(self, text):
        """Empty input yields empty collections"""
        assert extract_patterns(text) == PatternMatches()

    def test_deterministic(self):
        """Same input, same output"""
        text = "Serial number: AB12-CD34-EF56. IMEI: 356938035643809. Mail me at a@b.io"

        assert extract_patterns(text) == extract_patterns(text)
