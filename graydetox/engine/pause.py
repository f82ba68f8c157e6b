"""Pause button feature.

States: not pausing / pausing. A pause lasts ``pause_duration_ms`` and ends on
its own through a cancellable timer; toggling while pausing ends it early. A
new pause is refused until ``time_between_pauses_ms`` has passed since the
previous one ended. Releasing/re-applying other features' effects is the
dispatcher's job (see ``DispatchService.toggle_pause``).
"""

from __future__ import annotations

import threading
from typing import Any, Callable, Protocol

from graydetox.logger import logger

from .capabilities import Feature
from .ports import Clock, SettingsStore

DEFAULT_PAUSE_DURATION_MS = 5 * 60_000
DEFAULT_TIME_BETWEEN_PAUSES_MS = 30 * 60_000
NO_KEY = -1
LONG_PRESS_MS = 2000


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def start_daemon_timer(interval_sec: float, callback: Callable[[], None]) -> TimerHandle:
    timer = threading.Timer(interval_sec, callback)
    timer.daemon = True
    timer.start()
    return timer


class PauseButtonFeature(Feature):
    feature_id = "pause_button"

    def __init__(
        self,
        clock: Clock,
        store: SettingsStore,
        timer_factory: TimerFactory = start_daemon_timer,
    ) -> None:
        self._clock = clock
        self._store = store
        self._timer_factory = timer_factory
        self._timer: TimerHandle | None = None
        self._generation = 0
        self._pausing = False
        self.pausing_until_ms = 0
        self.last_pause_ended_ms = 0

    # --- 設定 ---

    def _key(self, name: str) -> str:
        return f"{self.id}.{name}"

    @property
    def pause_duration_ms(self) -> int:
        return int(self._store.get(self._key("pause_duration_ms"), DEFAULT_PAUSE_DURATION_MS))

    @property
    def time_between_pauses_ms(self) -> int:
        return int(
            self._store.get(self._key("time_between_pauses_ms"), DEFAULT_TIME_BETWEEN_PAUSES_MS)
        )

    @property
    def hardware_key(self) -> int:
        return int(self._store.get(self._key("hardware_key"), NO_KEY))

    def is_trigger(self, code: int, duration_ms: int) -> bool:
        """長押し（2秒超）された一時停止キーかどうか."""
        key = self.hardware_key
        return key != NO_KEY and code == key and duration_ms > LONG_PRESS_MS

    def update_settings(self, **values: int) -> None:
        for name, value in values.items():
            self._store.set(self._key(name), int(value))

    # --- 状態 ---

    def is_pausing(self) -> bool:
        return self._pausing

    @property
    def generation(self) -> int:
        """一時停止のたびに増える番号."""
        return self._generation

    def can_pause(self) -> bool:
        if self.last_pause_ended_ms == 0:
            return True
        elapsed = self._clock.now_epoch_ms() - self.last_pause_ended_ms
        return elapsed >= self.time_between_pauses_ms

    def is_current(self, generation: int) -> bool:
        """``generation`` の一時停止がまだ続いているか."""
        return self._pausing and generation == self._generation

    def begin_pause(self, on_expired: Callable[[int], None]) -> None:
        """一時停止に入り、自動再開タイマーを仕掛ける."""
        duration = self.pause_duration_ms
        self._generation += 1
        generation = self._generation
        self._pausing = True
        self.pausing_until_ms = self._clock.now_epoch_ms() + duration

        def expire() -> None:
            # 手動で再開済み、または別の一時停止に置き換わっていれば無視
            if self.is_current(generation):
                on_expired(generation)

        self._cancel_timer()
        self._timer = self._timer_factory(duration / 1000, expire)
        logger.info("Pause started for %d ms", duration)

    def end_pause(self) -> None:
        self._cancel_timer()
        if not self._pausing:
            return
        self._pausing = False
        self.pausing_until_ms = 0
        self.last_pause_ended_ms = self._clock.now_epoch_ms()
        logger.info("Pause ended")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def on_stop(self) -> None:
        self.end_pause()

    def status(self) -> dict[str, Any]:
        return {
            "pausing": self._pausing,
            "pausing_until_ms": self.pausing_until_ms,
            "last_pause_ended_ms": self.last_pause_ended_ms,
            "hardware_key": self.hardware_key,
        }
