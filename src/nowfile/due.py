"""
Due-Date Extraction

Finds the @due:YYYY-MM-DD marker embedded in a task description.
"""

import re
import logging
from datetime import datetime, timedelta
from typing import Optional

DUE_PATTERN = re.compile(r'@due:([0-9]{4})-([0-9]{2})-([0-9]{2})')

logger = logging.getLogger("TaskTracker.Due")


def extract_due_date(text: str) -> Optional[datetime]:
    """
    Extract the due date from the first @due marker in text

    The marker is matched by pattern only, so out-of-range months and days
    are rolled over into the following month/year.

    Args:
        text: Raw task description

    Returns:
        Local midnight of the due date, or None if there is no marker or the
        date cannot be represented
    """
    due_match = DUE_PATTERN.search(text)
    if not due_match:
        return None

    year, month, day = (int(part) for part in due_match.groups())
    try:
        return datetime(year, month, day)
    except ValueError:
        pass

    # Roll over like mktime: month 13 is January of the next year, day 0
    # is the last day of the previous month
    year += (month - 1) // 12
    month = (month - 1) % 12 + 1
    try:
        return datetime(year, month, 1) + timedelta(days=day - 1)
    except (ValueError, OverflowError):
        logger.debug(f"Unrepresentable due date: {due_match.group(0)}")
        return None
