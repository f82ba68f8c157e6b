from datetime import datetime, time

import pytest

from graydetox.model.models import (
    AppExceptionList,
    AppExceptionListType,
    DimIntensity,
    ScheduleWindow,
    ScrollEvent,
)

# 2026-10-19 は月曜日
MONDAY = datetime(2026, 10, 19)


class TestAppExceptionList:
    """例外リストのモード"""

    def test_include_only(self):
        lst = AppExceptionList(AppExceptionListType.INCLUDE_ONLY, frozenset({"a"}))
        assert lst.targets("a") is True
        assert lst.targets("b") is False

    def test_exclude(self):
        lst = AppExceptionList(AppExceptionListType.EXCLUDE, frozenset({"a"}))
        assert lst.targets("a") is False
        assert lst.targets("b") is True

    def test_default_targets_everything(self):
        assert AppExceptionList.from_dict(None).targets("anything") is True

    def test_from_dict(self):
        lst = AppExceptionList.from_dict({"mode": "INCLUDE_ONLY", "members": ["b", "a"]})
        assert lst.mode is AppExceptionListType.INCLUDE_ONLY
        assert lst.members == frozenset({"a", "b"})
        assert lst.to_dict() == {"mode": "INCLUDE_ONLY", "members": ["a", "b"]}


class TestScheduleWindow:
    """時間帯スケジュール"""

    def test_same_day_window(self):
        window = ScheduleWindow(start=time(8, 0), end=time(17, 0))
        assert window.contains(MONDAY.replace(hour=8)) is True
        assert window.contains(MONDAY.replace(hour=16, minute=59)) is True
        assert window.contains(MONDAY.replace(hour=17)) is False
        assert window.contains(MONDAY.replace(hour=7, minute=59)) is False

    def test_window_spanning_midnight(self):
        window = ScheduleWindow(start=time(22, 0), end=time(6, 0))
        assert window.spans_midnight is True
        assert window.contains(MONDAY.replace(hour=23)) is True
        assert window.contains(MONDAY.replace(hour=5)) is True
        assert window.contains(MONDAY.replace(hour=9)) is False

    def test_after_midnight_uses_previous_weekday(self):
        """月曜の夜だけ有効なら、火曜 2:00 は有効・月曜 2:00 は無効"""
        window = ScheduleWindow(start=time(22, 0), end=time(6, 0), weekdays=frozenset({0}))
        assert window.contains(datetime(2026, 10, 20, 2, 0)) is True
        assert window.contains(MONDAY.replace(hour=2)) is False

    def test_start_equals_end_is_all_day(self):
        window = ScheduleWindow()
        assert window.contains(MONDAY.replace(hour=0)) is True
        assert window.contains(MONDAY.replace(hour=12)) is True

    def test_weekday_filter(self):
        window = ScheduleWindow(start=time(8, 0), end=time(17, 0), weekdays=frozenset({5, 6}))
        assert window.contains(MONDAY.replace(hour=12)) is False
        assert window.contains(datetime(2026, 10, 24, 12, 0)) is True

    def test_dict_roundtrip(self):
        window = ScheduleWindow(start=time(22, 30), end=time(6, 0), weekdays=frozenset({0, 4}))
        assert ScheduleWindow.from_dict(window.to_dict()) == window

    @pytest.mark.parametrize(
        "data",
        [
            {"start": "25:00", "end": "06:00"},
            {"start": "noon", "end": "06:00"},
            {"start": "08:00", "end": "09:00", "weekdays": [7]},
        ],
    )
    def test_invalid_values(self, data):
        with pytest.raises(ValueError):
            ScheduleWindow.from_dict(data)


class TestScrollEvent:
    def test_scroll_view_size_prefers_item_count(self):
        assert ScrollEvent("v", item_count=12, max_scroll_extent=900).scroll_view_size == 12

    def test_scroll_view_size_falls_back_to_extent(self):
        assert ScrollEvent("v", item_count=0, max_scroll_extent=900).scroll_view_size == 900
        assert ScrollEvent("v").scroll_view_size == -1


def test_dim_intensity_select():
    dim = DimIntensity()
    assert dim.select(extra_dim=True) == 0.9
    assert dim.select(extra_dim=False) == 0.7
