"""Daily "color" screen-time accounting.

A session accrues time only between ``start_tracking`` and
``stop_and_accumulate``. The accrued total belongs to one calendar day; the
first mutating access on another day resets it. An interval that is still open
when the date changes is discarded instead of being attributed to either day.

Only ``used_up_ms`` and ``day`` are persisted. ``tracking_since_ms`` lives in
memory, so an interval left open by a killed process is dropped on restart
instead of being counted twice.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from datetime import date
from typing import Any

from graydetox.logger import logger

from .clock import start_of_day_epoch_ms
from .ports import Clock, SettingsStore, UsageStatsSource


class SessionPersister:
    """永続化をバックグラウンドで実行する.

    ワーカーは1つだけなので書き込み順は投入順と一致し、古い書き込みが後から
    新しい値を上書きすることはない。
    """

    def __init__(self, store: SettingsStore, executor: ThreadPoolExecutor | None = None) -> None:
        self._store = store
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="graydetox-persist"
        )

    def write(self, values: dict[str, Any]) -> Future[None]:
        return self._executor.submit(self._write, dict(values))

    def _write(self, values: dict[str, Any]) -> None:
        try:
            for key, value in values.items():
                self._store.set(key, value)
        except Exception:
            logger.exception("Failed to persist screen time (%s)", ", ".join(values))

    def flush(self, timeout: float | None = None) -> None:
        """投入済みの書き込みが終わるまで待つ."""
        self._executor.submit(lambda: None).result(timeout)

    def close(self) -> None:
        self._executor.shutdown(wait=True)


class ScreenTimeSession:
    def __init__(
        self,
        feature_id: str,
        clock: Clock,
        store: SettingsStore,
        persister: SessionPersister | None = None,
    ) -> None:
        self._clock = clock
        self._used_key = f"{feature_id}.used_up_ms"
        self._day_key = f"{feature_id}.day"
        self._persister = persister or SessionPersister(store)

        stored_day = store.get(self._day_key)
        self.day: date = date.fromisoformat(stored_day) if stored_day else clock.today()
        self.used_up_ms: int = int(store.get(self._used_key, 0) or 0)
        self.tracking_since_ms: int = 0

    @property
    def is_tracking(self) -> bool:
        return self.tracking_since_ms != 0

    @property
    def persister(self) -> SessionPersister:
        return self._persister

    def _date_changed(self) -> bool:
        return self._clock.today() != self.day

    def _reset(self) -> None:
        logger.info("Date changed (%s -> %s), resetting screen time", self.day, self._clock.today())
        self.used_up_ms = 0
        self.day = self._clock.today()
        self.tracking_since_ms = 0
        self._persist()

    def _persist(self) -> None:
        self._persister.write({self._used_key: self.used_up_ms, self._day_key: self.day.isoformat()})

    def start_tracking(self) -> None:
        """計測を開始する。計測中なら何もしない."""
        if self._date_changed():
            self._reset()
        if self.tracking_since_ms == 0:
            self.tracking_since_ms = self._clock.now_epoch_ms()

    def stop_and_accumulate(self) -> None:
        """計測中の区間を使用時間に加算して閉じる."""
        if self._date_changed():
            # 日付をまたいだ区間はどちらの日にも加算しない
            self._reset()
            return
        if self.tracking_since_ms == 0:
            return
        self.used_up_ms += self._clock.now_epoch_ms() - self.tracking_since_ms
        self.tracking_since_ms = 0
        self._persist()

    def current_total(self) -> int:
        """今日の使用時間（計測中の区間を含む）. 状態は変更しない."""
        if self._date_changed():
            return 0
        if self.tracking_since_ms == 0:
            return self.used_up_ms
        return self.used_up_ms + (self._clock.now_epoch_ms() - self.tracking_since_ms)

    def seed_from_usage_stats(self, source: UsageStatsSource, app_ids: list[str]) -> int:
        """OSの利用統計で今日の使用時間を補う.

        統計の値の方が大きい場合だけ採用する。採用後の使用時間を返す。
        """
        if self._date_changed():
            self._reset()
        seeded = int(source.screen_time_for_apps(app_ids, start_of_day_epoch_ms(self.day)))
        if seeded > self.used_up_ms:
            logger.info("Seeding screen time from usage stats: %d -> %d ms", self.used_up_ms, seeded)
            self.used_up_ms = seeded
            self._persist()
        return self.used_up_ms
