"""
Unit tests for Prompt Composer

Tests:
- Placeholder substitution (single pass, unknown names kept)
- Ticket content safety net
- Variable defaults
- Tag and pattern context rendering
"""
from ticket_intel.models.schemas import (
    PatternMatches,
    ProductContext,
    UrgencyInfo,
    UrgencyLevel,
    WarrantyStatus,
)
from ticket_intel.services.prompt_composer import (
    NO_TAG_CONTEXT,
    DEFAULT_URGENCY_HINT,
    build_followup_prompt,
    build_prompt_variables,
    compose_prompt,
    format_pattern_context,
    format_tag_context,
    substitute,
)


class TestSubstitute:
    """Placeholder substitution"""

    def test_replaces_all_occurrences(self):
        result = substitute("{{ticketId}} / {{ticketId}}", {"ticketId": "42"})

        assert result == "42 / 42"

    def test_unknown_placeholder_kept(self):
        """Unrecognised placeholders stay verbatim"""
        assert substitute("Hi {{agentName}}", {"ticketId": "42"}) == "Hi {{agentName}}"

    def test_no_double_expansion(self):
        """A substituted value containing a placeholder is not expanded again"""
        variables = {"ticketContent": "Customer wrote {{ticketId}}", "ticketId": "42"}

        result = substitute("Ticket: {{ticketContent}}", variables)

        assert result == "Ticket: Customer wrote {{ticketId}}"


class TestComposePrompt:
    """Prompt composition with the content safety net"""

    def test_content_appended_when_missing(self):
        """Template without {{ticketContent}} gets the content appended"""
        variables = {
            "ticketContent": "Screen is cracked",
            "patternContext": "Potential IMEI numbers detected: 356938035643809\n",
            "phoneNumbers": "",
        }

        prompt = compose_prompt("Summarize the ticket.", variables)

        assert prompt.startswith("Summarize the ticket.")
        assert "Here's the ticket content:" in prompt
        assert '"""\nScreen is cracked\n"""' in prompt
        assert "356938035643809" in prompt
        assert prompt.count("Screen is cracked") == 1

    def test_content_not_duplicated(self):
        """Template with {{ticketContent}} is used as-is"""
        variables = {"ticketContent": "Screen is cracked"}

        prompt = compose_prompt("Ticket:\n{{ticketContent}}", variables)

        assert prompt == "Ticket:\nScreen is cracked"

    def test_empty_content_not_appended(self):
        assert compose_prompt("Summarize.", {"ticketContent": ""}) == "Summarize."


class TestBuildPromptVariables:
    """Variable values and defaults"""

    def test_defaults_for_empty_context(self):
        variables = build_prompt_variables(
            ticket_id=None,
            ticket_content="text",
            patterns=PatternMatches(),
            product_context=ProductContext()
        )

        assert variables["ticketId"] == "Unknown"
        assert variables["tagContext"] == NO_TAG_CONTEXT
        assert variables["productModel"] == "none found"
        assert variables["warrantyStatus"] == "unknown"
        assert variables["issueCategories"] == ""
        assert variables["ticketUrgency"] == DEFAULT_URGENCY_HINT
        assert variables["patternContext"] == ""
        assert variables["phoneNumbers"] == ""
        assert variables["ticketContent"] == "text"

    def test_values_from_context(self):
        context = ProductContext(
            model="Phone 4",
            issue_categories=["Screen", "Water damage"],
            return_repair_status=["Return requested"],
            warranty_status=WarrantyStatus.IN_WARRANTY
        )
        urgency = UrgencyInfo(level=UrgencyLevel.HIGH, age_in_days=9, is_old=True)

        variables = build_prompt_variables("123", "text", PatternMatches(), context, urgency)

        assert variables["ticketId"] == "123"
        assert variables["productModel"] == "Phone 4"
        assert variables["warrantyStatus"] == "In warranty"
        assert variables["issueCategories"] == "Screen, Water damage"
        assert variables["returnRepairStatus"] == "Return requested"
        assert variables["ticketUrgency"] == "Ticket age: 9 days, Priority: high"


class TestContextRendering:
    """Tag and pattern context blocks"""

    def test_tag_context_lines(self):
        context = ProductContext(
            model="Phone 5",
            hardware_components=["screen"],
            software_context=["Android 13"],
            os_version="Android 13",
            warranty_status=WarrantyStatus.EXPIRED
        )

        rendered = format_tag_context(context)

        assert rendered == (
            "- Product model: Phone 5\n"
            "- Hardware components mentioned in tags: screen\n"
            "- Software context from tags: Android 13\n"
            "- OS version from tags: Android 13\n"
            "- Warranty status from tags: Warranty expired\n"
        )

    def test_unknown_warranty_omitted(self):
        assert format_tag_context(ProductContext()) == ""

    def test_pattern_context(self):
        patterns = PatternMatches(
            serial_numbers={"AB12-CD34-EF56"},
            addresses={"12 Baker Street, London, NW1 6XE"}
        )

        rendered = format_pattern_context(patterns)

        assert "Potential serial numbers detected: AB12-CD34-EF56\n" in rendered
        assert "Potential addresses detected:\n12 Baker Street, London, NW1 6XE\n" in rendered
        assert "IMEI" not in rendered


def test_followup_prompt_contains_summary_and_question():
    prompt = build_followup_prompt("Cracked screen, return requested.", "Is it in warranty?")

    assert "Cracked screen, return requested." in prompt
    assert "Is it in warranty?" in prompt
