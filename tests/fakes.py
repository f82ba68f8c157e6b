from datetime import date, datetime, timedelta
from typing import Callable


class FakeClock:
    """テスト用の時計. ``advance`` で進める."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 10, 19, 9, 0, 0)

    def now_epoch_ms(self) -> int:
        return int(self.current.timestamp() * 1000)

    def today(self) -> date:
        return self.current.date()

    def now(self) -> datetime:
        return self.current

    def advance(self, ms: int) -> None:
        self.current += timedelta(milliseconds=ms)


class RecordingOverlay:
    """show/hide の呼び出しを記録するオーバーレイ"""

    def __init__(self) -> None:
        self.calls: list[tuple[str, float | None]] = []
        self.visible = False
        self.intensity = 0.0
        self.fail = False

    def show(self, intensity: float) -> None:
        self.calls.append(("show", intensity))
        if self.fail:
            raise RuntimeError("overlay unavailable")
        self.visible = True
        self.intensity = intensity

    def hide(self) -> None:
        self.calls.append(("hide", None))
        if self.fail:
            raise RuntimeError("overlay unavailable")
        self.visible = False

    def is_visible(self) -> bool:
        return self.visible

    @property
    def show_count(self) -> int:
        return sum(1 for name, _ in self.calls if name == "show")

    @property
    def hide_count(self) -> int:
        return sum(1 for name, _ in self.calls if name == "hide")


class FakeTimer:
    def __init__(self, interval_sec: float, callback: Callable[[], None]) -> None:
        self.interval_sec = interval_sec
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        self.callback()


class FakeTimerFactory:
    """自動再開タイマーを手動で発火させるためのファクトリ"""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, interval_sec: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(interval_sec, callback)
        self.timers.append(timer)
        return timer

    @property
    def last(self) -> FakeTimer:
        return self.timers[-1]
