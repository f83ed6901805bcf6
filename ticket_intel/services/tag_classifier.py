"""
Tag Classifier - ticket tags to structured product context

Organizations adjust the vocabularies below to match their own tagging.
"""
import re
from typing import Dict, List, Optional, Sequence, Tuple

from ticket_intel.models.schemas import ProductContext, WarrantyStatus

# "phone5", "phone-5", "model_5"
PRODUCT_MODEL_PATTERN = re.compile(r'^([a-zA-Z]+)[_\-]?(\d+)$')

# Fallback when no tag has the generic brand-number shape
KEYWORD_MODELS: List[Tuple[str, str, str]] = [
    ("model-a", "Model A", "A"),
    ("model-b", "Model B", "B"),
    ("model-c", "Model C", "C"),
]

OS_PLATFORM = "android"
OS_PLATFORM_LABEL = "Android"
OS_VERSION_PATTERN = re.compile(rf'^{OS_PLATFORM}-(\d+(?:\.\d+)*)$', re.IGNORECASE)

HARDWARE_ISSUE_TAGS = frozenset([
    "screen", "display", "battery", "charging", "usb", "usb-c", "camera", "speaker",
    "microphone", "buttons", "power-button", "volume-buttons", "headphone-jack",
    "sim", "sim-tray", "sd-card", "wifi", "bluetooth", "nfc", "sensors",
])

SOFTWARE_ISSUE_TAGS = frozenset([
    "software", "os", "update", "android", "app", "apps", "crash", "reboot",
    "bootloop", "frozen", "slow", "performance", "settings", "permissions",
])

SPECIFIC_ISSUE_TAGS: Dict[str, str] = {
    "physical-damage": "Physical damage",
    "water-damage": "Water damage",
    "won't-turn-on": "Won't turn on",
    "won't-charge": "Won't charge",
    "overheating": "Overheating",
    "performance": "Performance issues",
    "battery-drain": "Battery drain",
    "connectivity": "Connectivity issues",
}

RETURN_REPAIR_TAGS: Dict[str, str] = {
    "return-requested": "Return requested",
    "return-approved": "Return approved",
    "return-in-progress": "Return in progress",
    "repair-requested": "Repair requested",
    "repair-approved": "Repair approved",
    "repair-in-progress": "Repair in progress",
    "warranty-claim": "Warranty claim",
    "rma": "Return Merchandise Authorization",
    "refund-requested": "Refund requested",
    "refund-approved": "Refund approved",
    "refund-processed": "Refund processed",
    "replacement": "Replacement requested",
}

SUPPORT_CONTEXT_TAGS: Dict[str, str] = {
    "first-contact": "First contact",
    "follow-up": "Follow-up contact",
    "escalated": "Escalated case",
    "urgent": "Urgent case",
    "high-priority": "High priority",
    "pre-sales": "Pre-sales inquiry",
    "post-sales": "Post-sales support",
    "technical": "Technical support",
    "billing": "Billing support",
    "shipping": "Shipping inquiry",
    "question": "General question",
    "feedback": "User feedback",
}

# Evaluation order matters: first present tag wins
WARRANTY_TAGS: List[Tuple[str, WarrantyStatus]] = [
    ("in-warranty", WarrantyStatus.IN_WARRANTY),
    ("out-of-warranty", WarrantyStatus.OUT_OF_WARRANTY),
    ("warranty-expired", WarrantyStatus.EXPIRED),
    ("extended-warranty", WarrantyStatus.EXTENDED),
]


def _append_unique(values: List[str], value: str) -> None:
    if value not in values:
        values.append(value)


def _category_label(tag: str) -> str:
    """'power-button' -> 'Power button'"""
    return tag[:1].upper() + tag[1:].replace("-", " ")


def detect_model(tags: Sequence[str]) -> Tuple[Optional[str], Optional[str]]:
    """
    Detect product model and generation

    The generic brand-number pattern is tried on every tag first; the fixed
    keyword table is only consulted when nothing matched.

    Returns:
        (model, generation) or (None, None)
    """
    for tag in tags:
        match = PRODUCT_MODEL_PATTERN.match(tag)
        if match:
            brand = match.group(1).capitalize()
            return f"{brand} {match.group(2)}", match.group(2)

    for keyword, model, generation in KEYWORD_MODELS:
        if keyword in tags:
            return model, generation

    return None, None


def detect_warranty(tags: Sequence[str]) -> WarrantyStatus:
    """Return the first warranty tag present in priority order"""
    for tag, status in WARRANTY_TAGS:
        if tag in tags:
            return status
    return WarrantyStatus.UNKNOWN


def classify_tags(tags: Optional[Sequence[str]]) -> ProductContext:
    """
    Map a ticket's tags to a ProductContext

    Args:
        tags: Ticket tags in their original order

    Returns:
        ProductContext; empty collections and Unknown warranty when no tag
        is recognised
    """
    tags = [tag for tag in (tags or []) if isinstance(tag, str)]
    context = ProductContext(raw_tags=list(tags))

    if not tags:
        return context

    context.model, context.generation = detect_model(tags)

    for tag in tags:
        if tag in HARDWARE_ISSUE_TAGS:
            _append_unique(context.issue_categories, _category_label(tag))
            _append_unique(context.hardware_components, tag.replace("-", " "))

        if tag in SOFTWARE_ISSUE_TAGS:
            _append_unique(context.issue_categories, _category_label(tag))
            _append_unique(context.software_context, tag.replace("-", " "))

        if tag in SPECIFIC_ISSUE_TAGS:
            _append_unique(context.issue_categories, SPECIFIC_ISSUE_TAGS[tag])

        os_match = OS_VERSION_PATTERN.match(tag)
        if os_match:
            os_version = f"{OS_PLATFORM_LABEL} {os_match.group(1)}"
            context.os_version = os_version
            _append_unique(context.software_context, os_version)

        if tag in RETURN_REPAIR_TAGS:
            _append_unique(context.return_repair_status, RETURN_REPAIR_TAGS[tag])

        if tag in SUPPORT_CONTEXT_TAGS:
            _append_unique(context.support_context, SUPPORT_CONTEXT_TAGS[tag])

    context.warranty_status = detect_warranty(tags)
    return context
