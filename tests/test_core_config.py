# tests/test_core_config.py

from datetime import timedelta
from io import StringIO
from unittest import mock

import pytest
from django.core.management import call_command

from core.models import SystemConfig
from core.utils import get_current_academic_year, get_current_time, is_window_open

pytestmark = pytest.mark.django_db


# =============================================================================
# ACADEMIC YEAR
# =============================================================================

def test_configured_academic_year_is_used():
    assert get_current_academic_year() == '2025-26'


@pytest.mark.parametrize('value', ['2025', '25-26', 'current', 2025])
def test_malformed_academic_year_falls_back_to_calendar(value):
    SystemConfig.set_config_value('academic.currentYear', value, 'string')

    year = get_current_academic_year()

    today = get_current_time().date()
    start = today.year if today.month >= 7 else today.year - 1
    assert year == f"{start}-{str(start + 1)[-2:]}"


def test_inactive_config_is_ignored():
    SystemConfig.objects.filter(config_key='academic.currentYear').update(is_active=False)

    assert SystemConfig.get_config_value('academic.currentYear', 'fallback') == 'fallback'


# =============================================================================
# SUBMISSION WINDOWS
# =============================================================================

def test_unconfigured_window_is_open():
    result = is_window_open('sem7.sixMonthSubmissionWindow')

    assert result['is_open'] is True
    assert result['start'] is None


def test_window_not_yet_open():
    start = get_current_time() + timedelta(days=2)
    SystemConfig.set_config_value(
        'sem7.choiceWindow', {'start': start.isoformat(), 'end': None}, 'object', category='sem7'
    )

    result = is_window_open('sem7.choiceWindow')

    assert result['is_open'] is False
    assert 'not yet available' in result['reason']


def test_window_closed():
    end = get_current_time() - timedelta(days=1)
    SystemConfig.set_config_value(
        'sem7.choiceWindow', {'start': None, 'end': end.isoformat()}, 'object', category='sem7'
    )

    result = is_window_open('sem7.choiceWindow')

    assert result['is_open'] is False
    assert 'closed' in result['reason']


def test_window_open_with_date_bounds():
    today = get_current_time().date()
    SystemConfig.set_config_value(
        'sem7.choiceWindow',
        {'start': (today - timedelta(days=3)).isoformat(), 'end': (today + timedelta(days=3)).isoformat()},
        'object',
        category='sem7',
    )

    assert is_window_open('sem7.choiceWindow')['is_open'] is True


def test_unreadable_window_fails_open():
    SystemConfig.set_config_value('sem7.choiceWindow', {'start': 'not a date'}, 'object', category='sem7')

    result = is_window_open('sem7.choiceWindow')

    assert result['is_open'] is True
    assert result['reason'] == 'Window check failed'


def test_window_lookup_error_fails_open():
    with mock.patch.object(SystemConfig, 'get_config_value', side_effect=RuntimeError('db down')):
        result = is_window_open('sem7.choiceWindow')

    assert result['is_open'] is True


# =============================================================================
# MANAGEMENT COMMAND
# =============================================================================

def test_init_system_config_seeds_defaults_without_overwriting():
    SystemConfig.set_config_value('academic.currentYear', '2026-27', 'string', category='academic')

    call_command('init_system_config', stdout=StringIO())

    assert SystemConfig.get_config_value('academic.currentYear') == '2026-27'
    assert SystemConfig.get_config_value('sem7.sixMonthSubmissionWindow') == {'start': None, 'end': None}
    assert SystemConfig.get_configs_by_category('sem7').count() >= 4


def test_init_system_config_overwrite_resets_values():
    SystemConfig.set_config_value('academic.currentYear', '2026-27', 'string', category='academic')

    call_command('init_system_config', '--overwrite', stdout=StringIO())

    assert SystemConfig.get_config_value('academic.currentYear') == '2025-26'
