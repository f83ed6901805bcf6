"""
Prompt Composer

Fills a user-editable template with ticket context. Placeholders use the
``{{name}}`` form; recognised names are listed in TEMPLATE_VARIABLES.
"""
import re
from typing import Dict, Mapping, Optional

from ticket_intel.models.schemas import (
    PatternMatches,
    ProductContext,
    UrgencyInfo,
    WarrantyStatus,
)

TEMPLATE_VARIABLES = (
    "ticketId",
    "tagContext",
    "productModel",
    "warrantyStatus",
    "issueCategories",
    "returnRepairStatus",
    "ticketUrgency",
    "patternContext",
    "phoneNumbers",
    "ticketContent",
)

PLACEHOLDER_PATTERN = re.compile(r'\{\{(\w+)\}\}')

NO_TAG_CONTEXT = "No relevant tags found in the ticket."
DEFAULT_URGENCY_HINT = "age, issue severity, and customer impact"


def format_tag_context(context: ProductContext) -> str:
    """
    Render the tag-derived context as bullet lines for the prompt

    Args:
        context: Classified product context

    Returns:
        Bullet list, empty string when nothing was classified
    """
    lines = []

    if context.model:
        lines.append(f"- Product model: {context.model}")

    if context.hardware_components:
        lines.append(
            f"- Hardware components mentioned in tags: {', '.join(context.hardware_components)}"
        )

    if context.software_context:
        lines.append(f"- Software context from tags: {', '.join(context.software_context)}")
        if context.os_version:
            lines.append(f"- OS version from tags: {context.os_version}")

    if context.issue_categories:
        lines.append(f"- Issue categories from tags: {', '.join(context.issue_categories)}")

    if context.return_repair_status:
        lines.append(
            f"- Return/repair status from tags: {', '.join(context.return_repair_status)}"
        )

    if context.support_context:
        lines.append(f"- Support context from tags: {', '.join(context.support_context)}")

    if context.warranty_status != WarrantyStatus.UNKNOWN:
        lines.append(f"- Warranty status from tags: {context.warranty_status.value}")

    return "".join(f"{line}\n" for line in lines)


def format_pattern_context(patterns: PatternMatches) -> str:
    """Render serial, IMEI and address detections for the prompt"""
    context = ""
    if patterns.serial_numbers:
        context += f"Potential serial numbers detected: {', '.join(sorted(patterns.serial_numbers))}\n"
    if patterns.imeis:
        context += f"Potential IMEI numbers detected: {', '.join(sorted(patterns.imeis))}\n"
    if patterns.addresses:
        addresses = "\n".join(sorted(patterns.addresses))
        context += f"Potential addresses detected:\n{addresses}\n"
    return context


def format_phone_context(patterns: PatternMatches) -> str:
    """Render phone detections separately so the model does not confuse them with IMEIs"""
    if not patterns.phones:
        return ""
    return f"\nPotential phone numbers detected: {', '.join(sorted(patterns.phones))}"


def build_prompt_variables(
    ticket_id: Optional[str],
    ticket_content: str,
    patterns: PatternMatches,
    product_context: ProductContext,
    urgency: Optional[UrgencyInfo] = None
) -> Dict[str, str]:
    """
    Build the value of every recognised template variable

    Args:
        ticket_id: Ticket identifier
        ticket_content: Assembled raw ticket text
        patterns: Identifiers detected in the ticket text
        product_context: Tag classification result
        urgency: Urgency descriptor, if ticket metadata was available

    Returns:
        Mapping of placeholder name to substitution text
    """
    urgency_text = ""
    if urgency is not None:
        urgency_text = f"Ticket age: {urgency.age_in_days} days, Priority: {urgency.level.value}"

    warranty = product_context.warranty_status
    return {
        "ticketId": ticket_id or "Unknown",
        "tagContext": format_tag_context(product_context) or NO_TAG_CONTEXT,
        "productModel": product_context.model or "none found",
        "warrantyStatus": warranty.value if warranty != WarrantyStatus.UNKNOWN else "unknown",
        "issueCategories": ", ".join(product_context.issue_categories),
        "returnRepairStatus": ", ".join(product_context.return_repair_status),
        "ticketUrgency": urgency_text or DEFAULT_URGENCY_HINT,
        "patternContext": format_pattern_context(patterns),
        "phoneNumbers": format_phone_context(patterns),
        "ticketContent": ticket_content,
    }


def substitute(template: str, variables: Mapping[str, str]) -> str:
    """
    Replace ``{{name}}`` placeholders in a single pass

    Substituted text is never re-scanned, so a value containing a
    placeholder is inserted literally. Unknown placeholders stay verbatim.
    """
    def replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in variables:
            return str(variables[name])
        return match.group(0)

    return PLACEHOLDER_PATTERN.sub(replace, template)


def compose_prompt(template: str, variables: Mapping[str, str]) -> str:
    """
    Compose the model prompt from a template

    When the composed prompt does not contain the ticket content (the
    template omitted ``{{ticketContent}}``), the content and the detected
    pattern and phone context are appended.

    Args:
        template: Prompt template with ``{{name}}`` placeholders
        variables: Placeholder values (see build_prompt_variables)

    Returns:
        Prompt text
    """
    prompt = substitute(template, variables)

    ticket_content = variables.get("ticketContent", "")
    if ticket_content and ticket_content not in prompt:
        prompt += (
            f'\n\nHere\'s the ticket content:\n"""\n{ticket_content}\n"""\n\n'
            f'{variables.get("patternContext", "")}\n{variables.get("phoneNumbers", "")}'
        )

    return prompt


def build_followup_prompt(summary: str, question: str) -> str:
    """
    Prompt for a follow-up question answered from the cached summary

    Args:
        summary: Previously generated ticket summary
        question: Agent question

    Returns:
        Prompt text
    """
    return (
        "You're a helpful assistant analyzing a Zendesk support ticket.\n\n"
        f"Here is the content of the ticket:\n{summary}\n\n"
        f"Now, please answer the following specific question about this ticket:\n{question}\n\n"
        "Provide a concise, direct answer based on the ticket information above.\n"
        "If the question cannot be answered with the available information, explain why."
    )
