# core/utils.py

import logging
import re
from datetime import datetime

from django.conf import settings
from django.utils import timezone
from django.utils.dateparse import parse_datetime, parse_date

logger = logging.getLogger(__name__)

ACADEMIC_YEAR_PATTERN = re.compile(r'^\d{4}-\d{2}$')

# Academic year rolls over in July
ACADEMIC_YEAR_START_MONTH = 7


# =============================================================================
# TIMEZONE UTILITY FUNCTIONS
# =============================================================================

def get_institute_timezone():
    """
    Get the institute's operational timezone (settings.TIME_ZONE).

    Returns:
        ZoneInfo
    """
    from zoneinfo import ZoneInfo
    return ZoneInfo(settings.TIME_ZONE)


def get_current_time():
    """
    Get current time in the institute's timezone.

    Use this for every timestamp the track engine writes (change stamps,
    review stamps, audit entries).
    """
    return timezone.now().astimezone(get_institute_timezone())


def get_today():
    """Today's date in the institute's timezone"""
    return get_current_time().date()


# =============================================================================
# ACADEMIC YEAR
# =============================================================================

def get_current_academic_year():
    """
    Resolve the current academic year (``YYYY-YY``).

    Uses the ``academic.currentYear`` config value when it is well formed,
    otherwise derives it from today's date with a July start.

    Example:
        >>> get_current_academic_year()
        '2025-26'
    """
    from core.models import SystemConfig

    year = SystemConfig.get_config_value('academic.currentYear')
    if isinstance(year, str) and ACADEMIC_YEAR_PATTERN.match(year):
        return year

    if year:
        logger.warning(f"Ignoring malformed academic.currentYear value: {year!r}")

    today = get_today()
    start_year = today.year if today.month >= ACADEMIC_YEAR_START_MONTH else today.year - 1
    return f"{start_year}-{str(start_year + 1)[-2:]}"


# =============================================================================
# SUBMISSION WINDOWS
# =============================================================================

def _parse_window_bound(value):
    if not value:
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = parse_datetime(str(value))
        if parsed is None:
            day = parse_date(str(value))
            if day is None:
                raise ValueError(f"Invalid window bound: {value!r}")
            parsed = datetime(day.year, day.month, day.day)
    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed, get_institute_timezone())
    return parsed


def is_window_open(config_key):
    """
    Check whether the time window stored under ``config_key`` is open.

    The config value is an object ``{"start": ..., "end": ...}``; either bound
    may be null. A window that is not configured is treated as open, and so
    is a window whose config cannot be read.

    Returns:
        dict: {'is_open': bool, 'reason': str, 'start': datetime|None, 'end': datetime|None}
    """
    from core.models import SystemConfig

    try:
        window = SystemConfig.get_config_value(config_key)

        if not window or (not window.get('start') and not window.get('end')):
            return {'is_open': True, 'reason': 'Window not configured', 'start': None, 'end': None}

        start = _parse_window_bound(window.get('start'))
        end = _parse_window_bound(window.get('end'))
        now = get_current_time()

        if start and now < start:
            return {
                'is_open': False,
                'reason': f"This operation is not yet available. Window opens on {start:%Y-%m-%d %H:%M}.",
                'start': start,
                'end': end,
            }

        if end and now > end:
            return {
                'is_open': False,
                'reason': f"This operation window has closed. Window closed on {end:%Y-%m-%d %H:%M}.",
                'start': start,
                'end': end,
            }

        return {'is_open': True, 'reason': 'Window is open', 'start': start, 'end': end}

    except Exception as e:
        # Fail open: admins can always correct the config directly
        logger.error(f"Window check error for {config_key}: {e}", exc_info=True)
        return {'is_open': True, 'reason': 'Window check failed', 'start': None, 'end': None}
