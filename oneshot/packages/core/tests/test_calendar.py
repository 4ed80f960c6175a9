"""季节事件日历测试 -- 跨年窗口与适用性过滤"""

from datetime import date, datetime

import pytest
from oneshot.core.calendar import (
    active_events,
    in_month_day_window,
    is_event_active,
    is_peak_month,
    is_within_window,
    window_bounds,
)
from oneshot.core.models import SeasonalEvent


def _event(**overrides) -> SeasonalEvent:
    data = {
        "eventKey": "transfer_portal_peak",
        "title": "Transfer Portal Peak",
        "startMonth": 12,
        "startDay": 1,
        "endMonth": 2,
        "endDay": 28,
        "applicableRoles": ["transfer_portal"],
        "priorityBoost": 3,
    }
    data.update(overrides)
    return SeasonalEvent.model_validate(data)


class TestWrapAroundWindow:
    """12/1 - 2/28 跨年窗口"""

    @pytest.mark.parametrize(
        "on_date",
        [date(2025, 12, 1), date(2025, 12, 31), date(2026, 1, 15), date(2026, 2, 28)],
    )
    def test_inside(self, on_date: date):
        assert is_within_window(_event(), on_date)

    @pytest.mark.parametrize(
        "on_date",
        [date(2025, 6, 15), date(2025, 11, 30), date(2026, 3, 1)],
    )
    def test_outside(self, on_date: date):
        assert not is_within_window(_event(), on_date)

    def test_accepts_datetime(self):
        assert is_within_window(_event(), datetime(2026, 1, 10, 23, 59))


class TestPlainWindow:
    def test_bounds_inclusive(self):
        event = _event(startMonth=6, startDay=15, endMonth=8, endDay=31)
        assert is_within_window(event, date(2025, 6, 15))
        assert is_within_window(event, date(2025, 8, 31))
        assert not is_within_window(event, date(2025, 6, 14))
        assert not is_within_window(event, date(2025, 9, 1))

    def test_missing_end_defaults_to_end_of_start_month(self):
        event = _event(startMonth=3, startDay=10, endMonth=None, endDay=None)
        assert window_bounds(event) == ((3, 10), (3, 31))
        assert is_within_window(event, date(2025, 3, 31))
        assert not is_within_window(event, date(2025, 4, 1))

    def test_raw_tuple_comparison(self):
        assert in_month_day_window((11, 15), (12, 31), (12, 5))
        assert not in_month_day_window((11, 15), (12, 31), (1, 5))


class TestActiveEvents:
    def test_role_filter(self):
        event = _event()
        assert is_event_active(event, date(2026, 1, 5), "football", "transfer_portal")
        assert not is_event_active(event, date(2026, 1, 5), "football", "high_school")

    def test_none_filters_match_everything(self):
        assert is_event_active(_event(), date(2026, 1, 5))

    def test_inactive_event_ignored(self):
        assert not is_event_active(_event(isActive=False), date(2026, 1, 5))

    def test_sport_filter(self):
        assert not is_event_active(_event(), date(2026, 1, 5), sport="basketball")

    def test_seed_events_in_december(self, catalog):
        keys = {
            e.event_key
            for e in active_events(
                catalog.seasonal_events.values(),
                date(2025, 12, 16),
                "football",
                "transfer_portal",
            )
        }
        # early_signing_period 仅适用于 high_school
        assert keys == {
            "transfer_portal_peak",
            "season_end",
            "transfer_portal_open",
        }

    def test_seed_events_in_june(self, catalog):
        assert active_events(catalog.seasonal_events.values(), date(2025, 6, 5)) == [
            catalog.seasonal_events["summer_camp_season"]
        ]


def test_peak_month():
    assert is_peak_month([12, 1, 2], date(2026, 1, 1))
    assert not is_peak_month([12, 1, 2], date(2026, 3, 1))
