"""
Pattern Extractor

Detects identifiers in raw ticket text with layered, context-aware
regular expressions:
- Phone numbers (context-anchored first, bare digit grouping as fallback)
- IMEIs (bare 15-digit sequences plus "IMEI:" style context)
- Serial numbers (labelled context plus bare uppercase block shape)
- Email addresses
- Postal addresses (labelled context, then a postal-code line scan)

Absence of a match is a normal result; extraction never raises.
"""
import re
from typing import Dict, Iterable, List, Pattern, Set

from ticket_intel.models.schemas import PatternMatches


# Compiled regex patterns, one entry per detection layer
PATTERNS: Dict[str, Pattern] = {
    'phone_context': re.compile(
        r'(?:(?:phone|telephone|contact|call|mobile)(?:\s+(?:me|at|on|number|#))?'
        r'(?:\s*(?::|is|at|=)?\s*)|my\s+number\s+is\s*(?::|-)?\s*)'
        r'((?:\+?\d{1,3}[-\s]?)?\(?\d{3,4}\)?[-\s]?\d{3,4}[-\s]?\d{3,4})',
        re.IGNORECASE
    ),
    'phone': re.compile(
        r'\b(?:\+\d{1,3}[-\s]?)?\(?\d{3,4}\)?[-\s]?\d{3,4}[-\s]?\d{3,4}\b'
    ),
    'imei': re.compile(
        r'\b\d{15}\b'
    ),
    'imei_context': re.compile(
        r'(?:imei|device\s+id|serial)(?:\s*(?::|number|#|is|=)?\s*)(\d{15})',
        re.IGNORECASE
    ),
    'serial_context': re.compile(
        r'(?:serial\s*(?:number|#|no|num)?|s/n|device\s+id)(?:\s*(?::|is|=)?\s*)'
        r'([a-z0-9][-a-z0-9\s]{6,25}[a-z0-9])',
        re.IGNORECASE
    ),
    # Case-sensitive: serials are written in upper case
    'serial': re.compile(
        r'\b(?:[A-Z0-9]{4,}[-\s]?){2,}\b'
    ),
    'email': re.compile(
        r'\b[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}\b',
        re.IGNORECASE
    ),
    'address_context': re.compile(
        r'(?:(?:shipping|delivery|billing|home|my)\s+address|address\s+is|'
        r'send\s+(?:it|this)\s+to|live\s+(?:at|in))(?:\s*(?::|=|is)?\s*)'
        r'([^:,.]{10,100}(?:[.,]\s*[a-z0-9][^:,.]{5,30}){1,3})',
        re.IGNORECASE
    ),
    'postal_code': re.compile(
        r'\b\d{4,6}(?:[-\s][A-Z]{2})?\b',
        re.IGNORECASE
    ),
    'street_keyword': re.compile(
        r'street|ave|road|boulevard|lane|drive|place|court|square|'
        r'st\.|rd\.|dr\.|pl\.|apt|app|avenue',
        re.IGNORECASE
    ),
}

IMEI_SHAPE = re.compile(r'^\d{15}$')
NON_DIGIT = re.compile(r'\D')

SERIAL_MIN_LENGTH = 8
SERIAL_MAX_LENGTH = 30
ADDRESS_LINE_MIN = 10
ADDRESS_LINE_MAX = 100
ADDRESS_NEIGHBOR_LINES = 2


def _context_phones(text: str) -> List[str]:
    """Phone numbers explicitly introduced by a phone/contact phrase"""
    return [m.group(1).strip() for m in PATTERNS['phone_context'].finditer(text)]


def _in_any_phone(candidate: str, phones: Iterable[str]) -> bool:
    return any(candidate in phone for phone in phones)


def extract_phones(text: str, context_phones: List[str]) -> Set[str]:
    """
    Extract phone numbers

    Context-anchored matches win; the bare digit-grouping pattern only runs
    when no context phone exists and never reports a 15-digit run (IMEI).
    """
    if context_phones:
        return set(context_phones)

    phones = set()
    for match in PATTERNS['phone'].finditer(text):
        candidate = match.group(0)
        if IMEI_SHAPE.match(NON_DIGIT.sub('', candidate)):
            continue
        phones.add(candidate)
    return phones


def extract_imeis(text: str, context_phones: List[str]) -> Set[str]:
    """Extract 15-digit IMEIs, skipping numbers that belong to a context phone"""
    imeis = {
        match.group(0)
        for match in PATTERNS['imei'].finditer(text)
        if not _in_any_phone(match.group(0), context_phones)
    }
    imeis.update(m.group(1).strip() for m in PATTERNS['imei_context'].finditer(text))
    return imeis


def _is_phone_shaped(candidate: str, phones: Iterable[str]) -> bool:
    return PATTERNS['phone'].fullmatch(candidate) is not None or _in_any_phone(candidate, phones)


def extract_serial_numbers(text: str, phones: Iterable[str]) -> Set[str]:
    """
    Extract labelled serial numbers plus standalone serial-shaped tokens

    Standalone tokens that are IMEI-shaped, phone-shaped or part of a
    detected phone number are dropped.
    """
    phones = list(phones)
    serials = {m.group(1).strip() for m in PATTERNS['serial_context'].finditer(text)}

    for match in PATTERNS['serial'].finditer(text):
        # The separator group may swallow one trailing space or hyphen
        candidate = match.group(0).rstrip(' \t\r\n-')
        if IMEI_SHAPE.match(candidate):
            continue
        if _is_phone_shaped(candidate, phones):
            continue
        if not SERIAL_MIN_LENGTH <= len(candidate) <= SERIAL_MAX_LENGTH:
            continue
        serials.add(candidate)

    return serials


def extract_emails(text: str) -> Set[str]:
    """Extract email addresses"""
    return {match.group(0) for match in PATTERNS['email'].finditer(text)}


def _looks_like_address_line(line: str) -> bool:
    return (
        ADDRESS_LINE_MIN < len(line) < ADDRESS_LINE_MAX
        and PATTERNS['postal_code'].search(line) is not None
        and PATTERNS['street_keyword'].search(line) is not None
    )


def extract_addresses(text: str) -> Set[str]:
    """
    Extract postal addresses

    An explicit phrase ("shipping address is", "live at") is preferred. Without
    one, every line carrying both a postal-code token and a street keyword is
    reported together with up to two neighbouring lines on each side.
    """
    addresses = {m.group(1).strip() for m in PATTERNS['address_context'].finditer(text)}
    if addresses:
        return addresses

    lines = text.split('\n')
    for index, raw_line in enumerate(lines):
        if not _looks_like_address_line(raw_line.strip()):
            continue

        start = max(0, index - ADDRESS_NEIGHBOR_LINES)
        end = min(len(lines) - 1, index + ADDRESS_NEIGHBOR_LINES)
        block = [
            lines[j].strip()
            for j in range(start, end + 1)
            if 3 < len(lines[j].strip()) < ADDRESS_LINE_MAX
        ]
        if block:
            addresses.add(', '.join(block))

    return addresses


def extract_patterns(text: str) -> PatternMatches:
    """
    Scan raw ticket text for identifiers

    Args:
        text: Raw ticket content

    Returns:
        PatternMatches with deduplicated values per category

    Example:
        >>> extract_patterns("IMEI: 356938035643809").imeis
        {'356938035643809'}
    """
    if not text:
        return PatternMatches()

    # Phones first so IMEI and serial detection can exclude them
    context_phones = _context_phones(text)
    phones = extract_phones(text, context_phones)

    return PatternMatches(
        serial_numbers=extract_serial_numbers(text, phones),
        imeis=extract_imeis(text, context_phones),
        addresses=extract_addresses(text),
        emails=extract_emails(text),
        phones=phones,
    )
