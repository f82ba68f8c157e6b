"""Collaborator interfaces consumed by the engine.

Implementations live outside the engine (overlay rendering, durable settings,
wall clock, OS usage statistics). Interfaces only.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any, Callable, Protocol


class DisplayOverlay(Protocol):
    """画面を暗くするオーバーレイ.

    ``show`` を繰り返し呼んだ場合は濃さだけ更新し、``hide`` は表示していなければ何もしない。
    """

    def show(self, intensity: float) -> None: ...

    def hide(self) -> None: ...

    def is_visible(self) -> bool: ...


class SettingsStore(Protocol):
    def get(self, key: str, default: Any = None) -> Any: ...

    def set(self, key: str, value: Any) -> None: ...


class Clock(Protocol):
    def now_epoch_ms(self) -> int: ...

    def today(self) -> date: ...

    def now(self) -> datetime:
        """Local wall-clock time, used for schedule evaluation."""
        ...


class UsageStatsSource(Protocol):
    def screen_time_for_apps(self, app_ids: list[str], since_epoch_ms: int) -> int: ...


KeyEventListener = Callable[[int, int], bool]
"""``(code, duration_ms) -> consumed``."""
