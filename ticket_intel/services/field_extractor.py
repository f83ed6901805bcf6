"""
Field Extractor - structured fields from a generated summary

Works on the model's narrative output rather than raw ticket text, so the
patterns tolerate prose ("bought it on March 3rd") as well as labels
("Order number: 123"). For every field the patterns are ordered from
explicit label to loose shape; the first match wins.
"""
import re
from typing import Dict, List, Optional, Pattern

from ticket_intel.models.schemas import ExtractedFields
from ticket_intel.utils.logger import get_logger

logger = get_logger(__name__)

_I = re.IGNORECASE

# Order identifiers carry at least one digit
_ORDER_ID = r"(?=[a-z#-]*\d)[a-z0-9#-]+"

FIELD_PATTERNS: Dict[str, List[Pattern]] = {
    'order_number': [
        # Order number: ABC123
        re.compile(r'\border\b\s*(?:number|#|no|num)?(?:\s*(?::|-)?\s*)(' + _ORDER_ID + r')', _I),
        # #ORD-12345
        re.compile(r'\b(?:ord|order|#ord)\b[:\s-]*(' + _ORDER_ID + r')', _I),
        # order is ABC123
        re.compile(r'\border\s+(?:is|was|:)?\s*(' + _ORDER_ID + r')', _I),
    ],
    'product': [
        # Product: XYZ
        re.compile(r'product(?:\s*(?:name|type))?(?:\s*(?::|-)?\s*)([^,.\n]+)', _I),
        # a Phone 4
        re.compile(r'(?:a|the)\s+([^,.\n]*?(?:phone|model)\s*\d*[^,.\n]*)', _I),
        # using a new device 4
        re.compile(r'(?:my|using|have)(?:\s+a)?(?:\s+[^,.\n]*)?(?:\s+)(device\s*\d*[^,.\n]*)', _I),
    ],
    'serial_number': [
        # Serial number: ABC123
        re.compile(r'serial\s*(?:number|#|no|num)?(?:\s*(?::|-)?\s*)([a-z0-9-]+)', _I),
        # SN: ABC123
        re.compile(r'\b(?:sn|s/n|serial)[\s:]*([a-z0-9-]+)', _I),
        # IMEI or device ID
        re.compile(r'\b(?:imei|device\s*id|device\s*number)[\s:]*(\d[\d-]+\d)', _I),
    ],
    'date_of_purchase': [
        re.compile(
            r'(?:date of purchase|purchase date|bought on|purchased on|ordered on)'
            r'(?:\s*(?::|-)?\s*)([^,.\n]+)', _I
        ),
        # bought it on March 3rd
        re.compile(
            r'(?:bought|purchased|ordered|received)(?:\s+it)?(?:\s+on|\s+in|\s+at)'
            r'(?:\s+the)?(?:\s+)([^,.\n]+)', _I
        ),
        # purchased in January 2023
        re.compile(r'(?:bought|purchased|ordered|received)(?:\s+in|\s+on)(?:\s+)([a-z]+\s+\d{4})', _I),
        # since March 2023
        re.compile(
            r'(?:since|from)\s+([a-z]+\s+\d{4}|(?:(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)'
            r'[a-z]*[\s,.]+(?:\d{1,2}[,.\s]+)?\d{4}))', _I
        ),
    ],
    'reason_for_return': [
        re.compile(
            r'(?:reason for return|return reason|returning because)(?:\s*(?::|-)?\s*)([^,.\n]+)', _I
        ),
        re.compile(r'(?:issue|problem|defect|broken|not working)(?:\s+is|:|\s+-)?(?:\s*)([^,.\n]+)', _I),
        re.compile(r'(?:complaint|issue description|error)(?:\s*(?::|-)?\s*)([^,.\n]+)', _I),
    ],
    'address': [
        # Address: 123 Main St, City, 12345
        re.compile(r'address(?:\s*(?::|-)?\s*)([^,]*,.+?\d{4,}[^,.\n]*)', _I),
        re.compile(r'shipping\s+(?:address|to)(?:\s*(?::|-)?\s*)([^,]*,.+?\d{4,}[^,.\n]*)', _I),
        re.compile(r'delivery\s+(?:address|to)(?:\s*(?::|-)?\s*)([^,]*,.+?\d{4,}[^,.\n]*)', _I),
    ],
}


def extract_brief_summary(summary: str) -> Optional[str]:
    """The last non-bulleted, non-blank line carries the gist"""
    lines = [
        line for line in summary.split('\n')
        if not line.startswith('-') and line.strip()
    ]
    if not lines:
        return None
    return lines[-1].strip()


def match_first(text: str, patterns: List[Pattern]) -> Optional[str]:
    """
    Return the first non-blank capture of the first matching pattern

    Args:
        text: Text to search
        patterns: Patterns in priority order, each with one capture group

    Returns:
        Trimmed capture or None
    """
    for pattern in patterns:
        match = pattern.search(text)
        if match:
            value = match.group(1).strip()
            if value:
                return value
    return None


def extract_fields(summary: str) -> ExtractedFields:
    """
    Extract transactional fields from a generated summary

    Args:
        summary: Model-generated summary text

    Returns:
        ExtractedFields; unmatched fields are None
    """
    if not summary:
        return ExtractedFields()

    values = {
        name: match_first(summary, patterns)
        for name, patterns in FIELD_PATTERNS.items()
    }
    fields = ExtractedFields(brief_summary=extract_brief_summary(summary), **values)

    if fields.is_empty:
        logger.warning("Extraction yielded no fields")

    return fields
