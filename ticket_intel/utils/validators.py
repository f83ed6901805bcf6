"""
Input validation utilities
"""
import re
from typing import Optional

TICKET_URL_PATTERN = re.compile(r'/tickets/(\d+)')


def validate_ticket_id(ticket_id: str) -> bool:
    """
    Validate Zendesk ticket ID format

    Args:
        ticket_id: Ticket ID to validate

    Returns:
        True if valid format
    """
    # Zendesk ticket IDs are numeric
    return bool(ticket_id) and ticket_id.isdigit()


def extract_ticket_id_from_url(url: str) -> Optional[str]:
    """
    Extract ticket ID from an agent console URL

    Args:
        url: URL such as https://acme.zendesk.com/agent/tickets/12345

    Returns:
        Ticket ID or None if the URL is not a ticket page
    """
    if not url:
        return None

    match = TICKET_URL_PATTERN.search(url)
    return match.group(1) if match else None


def sanitize_input(text: str, max_length: int = 10000) -> str:
    """
    Sanitize user input

    Args:
        text: Input text to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized text
    """
    # Remove null bytes
    text = text.replace('\x00', '')

    # Truncate to max length
    if len(text) > max_length:
        text = text[:max_length]

    return text.strip()
