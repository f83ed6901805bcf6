"""
Unit tests for Tag Classifier
"""
from ticket_intel.models.schemas import ProductContext, WarrantyStatus
from ticket_intel.services.tag_classifier import (
    classify_tags,
    detect_model,
    detect_warranty,
)


class TestModelDetection:
    """Product model detection"""

    def test_generic_brand_number_tag(self):
        """'phone5' becomes 'Phone 5', generation '5'"""
        assert detect_model(["phone5"]) == ("Phone 5", "5")

    def test_separator_variants(self):
        """Hyphen and underscore separators are accepted"""
        assert detect_model(["phone-7"]) == ("Phone 7", "7")
        assert detect_model(["PHONE_3"]) == ("Phone 3", "3")

    def test_generic_pattern_shadows_keyword_table(self):
        """'model-5' matches the generic pattern before any keyword rule"""
        context = classify_tags(["model-5"])

        assert context.model == "Model 5"
        assert context.generation == "5"

    def test_keyword_fallback(self):
        """'model-b' has no number so the keyword table applies"""
        assert detect_model(["screen", "model-b"]) == ("Model B", "B")

    def test_first_matching_tag_wins(self):
        """Only one rule sets the model"""
        assert detect_model(["tablet2", "phone5", "model-a"]) == ("Tablet 2", "2")

    def test_no_model(self):
        """Tags without a model shape leave model unset"""
        assert detect_model(["screen", "urgent"]) == (None, None)


class TestClassifyTags:
    """Full classification"""

    def test_empty_tags(self):
        """Empty tag list yields an empty context with Unknown warranty"""
        context = classify_tags([])

        assert context == ProductContext()
        assert context.warranty_status == WarrantyStatus.UNKNOWN

    def test_none_tags(self):
        """None is treated like an empty list"""
        assert classify_tags(None) == ProductContext()

    def test_hardware_tags(self):
        """Hardware tags feed issue categories and components"""
        context = classify_tags(["power-button", "battery"])

        assert context.issue_categories == ["Power button", "Battery"]
        assert context.hardware_components == ["power button", "battery"]

    def test_software_and_specific_issue(self):
        """'performance' is both a software tag and a specific issue"""
        context = classify_tags(["performance", "crash"])

        assert context.issue_categories == ["Performance", "Performance issues", "Crash"]
        assert context.software_context == ["performance", "crash"]

    def test_os_version(self):
        """'android-13.1' sets the OS version and software context"""
        context = classify_tags(["android-13.1"])

        assert context.os_version == "Android 13.1"
        assert "Android 13.1" in context.software_context

    def test_return_and_support_context(self):
        """Return/repair and support path labels"""
        context = classify_tags(["rma", "escalated", "billing"])

        assert context.return_repair_status == ["Return Merchandise Authorization"]
        assert context.support_context == ["Escalated case", "Billing support"]

    def test_duplicate_tags_are_unique(self):
        """Repeated tags do not duplicate categories"""
        context = classify_tags(["screen", "screen", "water-damage", "water-damage"])

        assert context.issue_categories == ["Screen", "Water damage"]
        assert context.hardware_components == ["screen"]

    def test_raw_tags_preserved(self):
        """Original tags are kept in order"""
        tags = ["screen", "phone5", "unknown-tag"]

        assert classify_tags(tags).raw_tags == tags

    def test_unrecognised_tags_only(self):
        """Unknown tags produce no categories"""
        context = classify_tags(["foo-bar", "misc"])

        assert context.issue_categories == []
        assert context.model is None
        assert context.warranty_status == WarrantyStatus.UNKNOWN


class TestWarranty:
    """Warranty status priority"""

    def test_in_warranty_wins(self):
        """'in-warranty' is checked before the other warranty tags"""
        assert detect_warranty(["warranty-expired", "in-warranty"]) == WarrantyStatus.IN_WARRANTY

    def test_expired(self):
        assert detect_warranty(["warranty-expired"]) == WarrantyStatus.EXPIRED

    def test_extended(self):
        assert classify_tags(["extended-warranty"]).warranty_status == WarrantyStatus.EXTENDED
