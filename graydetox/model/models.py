"""Domain models shared by the engine, the watchers and the HTTP host."""

from __future__ import annotations

__all__ = [
    "AppExceptionList",
    "AppExceptionListType",
    "AppOpened",
    "DimIntensity",
    "HardwareKey",
    "ScheduleWindow",
    "ScreenTurnedOff",
    "ScrollEvent",
    "ServiceState",
    "SystemEvent",
]

from dataclasses import dataclass, field
from datetime import datetime, time, timedelta
from enum import Enum
from typing import Any, Union


class ServiceState(Enum):
    """ディスパッチャーの状態."""

    ACTIVE = "Active"
    PAUSED = "Paused"
    INACTIVE = "Inactive"


# --- SystemEvent ---


@dataclass(frozen=True)
class AppOpened:
    """前面アプリが切り替わったイベント."""

    package_id: str
    event_class: str = ""
    is_fullscreen: bool = False
    raw_source_present: bool = True


@dataclass(frozen=True)
class ScrollEvent:
    """スクロールイベント.

    ``max_scroll_extent == -1`` は「情報なし」のセンチネル値.
    """

    view_id: str
    item_count: int = 0
    max_scroll_extent: int = -1
    source_present: bool = True
    event_class: str = ""

    @property
    def scroll_view_size(self) -> int:
        return self.item_count if self.item_count > 0 else self.max_scroll_extent


@dataclass(frozen=True)
class ScreenTurnedOff:
    """画面オフ."""


@dataclass(frozen=True)
class HardwareKey:
    """ハードウェアキーの押下（離した時点で通知される）."""

    code: int
    press_duration_ms: int


SystemEvent = Union[AppOpened, ScrollEvent, ScreenTurnedOff, HardwareKey]


# --- 設定値 ---


class AppExceptionListType(Enum):
    INCLUDE_ONLY = "INCLUDE_ONLY"
    EXCLUDE = "EXCLUDE"


@dataclass(frozen=True)
class AppExceptionList:
    """例外リスト: モードとアプリIDの集合."""

    mode: AppExceptionListType = AppExceptionListType.EXCLUDE
    members: frozenset[str] = field(default_factory=frozenset)

    def targets(self, package_id: str) -> bool:
        """このアプリがポリシーの対象かどうか."""
        if self.mode is AppExceptionListType.INCLUDE_ONLY:
            return package_id in self.members
        return package_id not in self.members

    def to_dict(self) -> dict[str, Any]:
        return {"mode": self.mode.value, "members": sorted(self.members)}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> AppExceptionList:
        if not data:
            return cls()
        return cls(
            mode=AppExceptionListType(data.get("mode", AppExceptionListType.EXCLUDE.value)),
            members=frozenset(data.get("members") or ()),
        )


def _parse_time_of_day(value: str) -> time:
    try:
        hours, minutes = value.split(":")
        return time(int(hours), int(minutes))
    except ValueError as e:
        msg = f"invalid time of day: {value!r} (expected HH:MM)"
        raise ValueError(msg) from e


@dataclass(frozen=True)
class ScheduleWindow:
    """時間帯スケジュール.

    ``end <= start`` の場合は日付をまたぐ。``start == end`` は終日扱い。
    曜日は ``datetime.weekday()`` と同じく月曜=0。日付をまたいだ後半部分は
    開始日の曜日として判定する。
    """

    start: time = time(0, 0)
    end: time = time(0, 0)
    weekdays: frozenset[int] = frozenset(range(7))

    @property
    def spans_midnight(self) -> bool:
        return self.end <= self.start

    def contains(self, moment: datetime) -> bool:
        """``moment`` がウィンドウ内かどうか."""
        now = moment.time()
        if not self.spans_midnight:
            return moment.weekday() in self.weekdays and self.start <= now < self.end
        if now >= self.start:
            return moment.weekday() in self.weekdays
        if now < self.end:
            return (moment - timedelta(days=1)).weekday() in self.weekdays
        return False

    def to_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.strftime("%H:%M"),
            "end": self.end.strftime("%H:%M"),
            "weekdays": sorted(self.weekdays),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScheduleWindow:
        weekdays = frozenset(int(d) for d in data.get("weekdays", range(7)))
        if any(d < 0 or d > 6 for d in weekdays):  # noqa: PLR2004
            msg = f"weekdays must be within 0..6: {sorted(weekdays)}"
            raise ValueError(msg)
        return cls(
            start=_parse_time_of_day(data.get("start", "00:00")),
            end=_parse_time_of_day(data.get("end", "00:00")),
            weekdays=weekdays,
        )


@dataclass(frozen=True)
class DimIntensity:
    """オーバーレイの濃さ (0.0 - 1.0)."""

    normal: float = 0.7
    extra: float = 0.9

    def select(self, *, extra_dim: bool) -> float:
        return self.extra if extra_dim else self.normal
