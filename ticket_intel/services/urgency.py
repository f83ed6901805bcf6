"""
Urgency Calculator - ticket age and declared priority to an urgency level
"""
from datetime import datetime, timezone as dt_timezone
from typing import Optional, Union

from dateutil import parser as date_parser

from ticket_intel.models.schemas import UrgencyInfo, UrgencyLevel
from ticket_intel.utils.logger import get_logger

logger = get_logger(__name__)

OLD_TICKET_DAYS = 7
AGING_TICKET_DAYS = 3
HIGH_PRIORITIES = {"urgent", "high"}


def _as_aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt_timezone.utc)
    return value


def calculate_urgency(
    created_at: Optional[Union[str, datetime]],
    priority: Optional[str],
    now: Optional[datetime] = None
) -> UrgencyInfo:
    """
    Derive urgency from ticket age and declared priority

    Policy, in order:
    1. Older than 7 days -> high, whatever the declared priority
    2. Declared urgent/high -> high
    3. Declared low -> low
    4. Otherwise normal (noting the age once older than 3 days)

    Args:
        created_at: Ticket creation time (ISO-8601 string or datetime)
        priority: Declared ticket priority
        now: Reference time (defaults to current UTC time)

    Returns:
        UrgencyInfo
    """
    if not created_at:
        return UrgencyInfo()

    if isinstance(created_at, str):
        try:
            created_at = date_parser.isoparse(created_at)
        except (ValueError, OverflowError) as e:
            logger.warning(f"Unparseable ticket creation time {created_at!r}: {e}")
            return UrgencyInfo()

    reference = _as_aware(now or datetime.now(dt_timezone.utc))
    age_seconds = (reference - _as_aware(created_at)).total_seconds()
    age_in_days = max(0, int(age_seconds // 86400))

    declared = (priority or "").lower()

    if age_in_days > OLD_TICKET_DAYS:
        return UrgencyInfo(
            level=UrgencyLevel.HIGH,
            age_in_days=age_in_days,
            is_old=True,
            description=f"High priority - Ticket is {age_in_days} days old"
        )

    if declared in HIGH_PRIORITIES:
        return UrgencyInfo(
            level=UrgencyLevel.HIGH,
            age_in_days=age_in_days,
            description="High priority - Marked as urgent in Zendesk"
        )

    if declared == "low":
        return UrgencyInfo(
            level=UrgencyLevel.LOW,
            age_in_days=age_in_days,
            description="Low priority"
        )

    description = "Normal priority"
    if age_in_days > AGING_TICKET_DAYS:
        description = f"Normal priority - Ticket is {age_in_days} days old"

    return UrgencyInfo(
        level=UrgencyLevel.NORMAL,
        age_in_days=age_in_days,
        description=description
    )
