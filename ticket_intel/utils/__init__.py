"""
Utility functions
"""
from ticket_intel.utils.logger import get_logger
from ticket_intel.utils.validators import (
    validate_ticket_id,
    extract_ticket_id_from_url,
    sanitize_input
)

__all__ = [
    "get_logger",
    "validate_ticket_id",
    "extract_ticket_id_from_url",
    "sanitize_input",
]
