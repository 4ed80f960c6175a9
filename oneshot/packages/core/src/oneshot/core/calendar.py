"""季节事件日历 -- 每年重复的 (月, 日) 窗口判定

窗口可跨年（如 12/1 - 2/28）：起点晚于终点时按环绕比较，
不能使用简单的数值区间比较。
"""

from collections.abc import Iterable
from datetime import date, datetime

from .models.catalog import SeasonalEvent


def _as_date(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def window_bounds(event: SeasonalEvent) -> tuple[tuple[int, int], tuple[int, int]]:
    """返回 ((start_month, start_day), (end_month, end_day))

    end_month 缺省为 start_month；end_day 缺省为月末（按 31 比较）。
    """
    end_month = event.end_month if event.end_month is not None else event.start_month
    end_day = event.end_day if event.end_day is not None else 31
    return (event.start_month, event.start_day), (end_month, end_day)


def in_month_day_window(
    start: tuple[int, int],
    end: tuple[int, int],
    current: tuple[int, int],
) -> bool:
    """(月, 日) 区间包含判定，支持跨年环绕，两端均为闭区间"""
    if start <= end:
        return start <= current <= end
    # 跨年：12/1 - 2/28 覆盖 [12/1, 12/31] ∪ [1/1, 2/28]
    return current >= start or current <= end


def is_within_window(event: SeasonalEvent, on_date: date | datetime) -> bool:
    """给定日期是否落在事件窗口内（不考虑 is_active）"""
    day = _as_date(on_date)
    start, end = window_bounds(event)
    return in_month_day_window(start, end, (day.month, day.day))


def is_event_active(
    event: SeasonalEvent,
    on_date: date | datetime,
    sport: str | None = None,
    role: str | None = None,
) -> bool:
    """事件已启用、适用于 sport/role 且日期在窗口内"""
    return (
        event.is_active
        and event.applies_to(sport, role)
        and is_within_window(event, on_date)
    )


def active_events(
    events: Iterable[SeasonalEvent],
    on_date: date | datetime,
    sport: str | None = None,
    role: str | None = None,
) -> list[SeasonalEvent]:
    """筛选给定日期生效的季节事件"""
    return [e for e in events if is_event_active(e, on_date, sport, role)]


def is_peak_month(peak_months: Iterable[int], on_date: date | datetime) -> bool:
    """当前月份是否属于任务的高峰月份"""
    return _as_date(on_date).month in set(peak_months)
