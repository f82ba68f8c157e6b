"""Grayscale apps feature.

Decides per foreground app whether the darkening overlay should be shown.
Targeted apps (per the exception list) accrue "color" time against a daily
budget; once the budget is used up, or immediately when the budget is 0, the
overlay is shown while a targeted app is in the foreground.

The overlay is only touched on a transition of ``is_currently_dark``. The
flag reflects intent: a failed ``show``/``hide`` is logged and not retried
until the desired state changes again.
"""

from __future__ import annotations

from typing import Any

from graydetox.logger import logger
from graydetox.model.models import AppExceptionList, DimIntensity, ScheduleWindow

from .capabilities import Capability, Feature
from .ports import Clock, DisplayOverlay, SettingsStore
from .session import ScreenTimeSession

# 一部のカスタムROMで isFullScreen=true を報告しない人気アプリ
KNOWN_FULLSCREEN_PACKAGES = (
    "com.instagram.android",
    "com.tiktok",
    "com.android.youtube",
    "com.google.android.youtube",
    "com.facebook.katana",
    "com.twitter.android",
    "com.reddit.frontpage",
)


def should_darken(total_ms: int, budget_ms: int) -> bool:
    """予算 0 は即時、それ以外は使用時間が予算に達したら（境界を含む）暗くする."""
    return budget_ms == 0 or total_ms >= budget_ms


class GrayscaleAppsFeature(Feature):
    feature_id = "grayscale_apps"
    capabilities = frozenset(
        {
            Capability.RESPONDS_TO_APP_OPENED,
            Capability.RESPONDS_TO_SCREEN_OFF,
            Capability.HAS_SCHEDULE,
            Capability.HAS_APP_EXCEPTIONS,
            Capability.TRACKS_SCREEN_TIME,
        }
    )

    def __init__(
        self,
        clock: Clock,
        store: SettingsStore,
        overlay: DisplayOverlay,
        session: ScreenTimeSession | None = None,
        dim_intensity: DimIntensity | None = None,
    ) -> None:
        self._clock = clock
        self._store = store
        self._overlay = overlay
        self._screen_time = session or ScreenTimeSession(self.id, clock, store)
        self.dim_intensity = dim_intensity or DimIntensity()

        self.is_currently_dark = False
        self.last_tracked_package_id: str | None = None

    # --- 設定（毎回ストアから読む） ---

    def _key(self, name: str) -> str:
        return f"{self.id}.{name}"

    @property
    def exception_list(self) -> AppExceptionList:
        return AppExceptionList.from_dict(self._store.get(self._key("exception_list")))

    @property
    def schedule(self) -> ScheduleWindow | None:
        data = self._store.get(self._key("schedule"))
        return ScheduleWindow.from_dict(data) if data else None

    @property
    def screen_time(self) -> ScreenTimeSession:
        return self._screen_time

    @property
    def ignore_non_fullscreen(self) -> bool:
        return bool(self._store.get(self._key("ignore_non_fullscreen"), True))

    @property
    def daily_color_budget_ms(self) -> int:
        return int(self._store.get(self._key("daily_color_budget_ms"), 0))

    @property
    def extra_dim(self) -> bool:
        return bool(self._store.get(self._key("extra_dim"), True))

    @property
    def known_fullscreen_packages(self) -> frozenset[str]:
        packages = self._store.get(self._key("known_fullscreen_packages"))
        if packages is None:
            return frozenset(KNOWN_FULLSCREEN_PACKAGES)
        return frozenset(packages)

    def update_settings(self, **values: Any) -> None:
        """設定をまとめて書き込む. 値は JSON 互換であること."""
        for name, value in values.items():
            if isinstance(value, (AppExceptionList, ScheduleWindow)):
                value = value.to_dict()
            self._store.set(self._key(name), value)

    # --- 判定 ---

    def is_effectively_fullscreen(self, package_id: str, is_fullscreen: bool) -> bool:
        if is_fullscreen:
            return True
        if package_id in self.known_fullscreen_packages:
            logger.debug("%s is a known fullscreen app, treating as fullscreen", package_id)
            return True
        return False

    def is_within_schedule(self) -> bool:
        schedule = self.schedule
        return schedule is None or schedule.contains(self._clock.now())

    def on_app_opened(self, package_id: str, is_fullscreen: bool, event_class: str) -> None:
        targeted = self.exception_list.targets(package_id)
        fullscreen = self.is_effectively_fullscreen(package_id, is_fullscreen)
        logger.debug(
            "on_app_opened package=%s class=%s fullscreen=%s targeted=%s",
            package_id,
            event_class,
            fullscreen,
            targeted,
        )

        # 対象外かつ全画面でないアプリ（キーボード・通知バー等）には干渉しない
        if not targeted and self.ignore_non_fullscreen and not fullscreen:
            self._close_session()
            return

        if not targeted or not self.is_within_schedule():
            self._close_session()
            if self.is_currently_dark:
                self._set_dark(False)
            return

        if self.last_tracked_package_id not in (None, package_id):
            self._screen_time.stop_and_accumulate()
        if self.last_tracked_package_id != package_id:
            self._screen_time.start_tracking()
            self.last_tracked_package_id = package_id

        total = self._screen_time.current_total()
        budget = self.daily_color_budget_ms
        dark = should_darken(total, budget)
        logger.debug("total=%d budget=%d should_darken=%s", total, budget, dark)
        if dark != self.is_currently_dark:
            self._set_dark(dark)

    def on_screen_turned_off(self) -> None:
        self._screen_time.stop_and_accumulate()

    def _close_session(self) -> None:
        if self.last_tracked_package_id is not None:
            self._screen_time.stop_and_accumulate()
            self.last_tracked_package_id = None

    def _set_dark(self, dark: bool) -> None:
        # 描画の成否に関わらず意図した状態を記録する
        self.is_currently_dark = dark
        try:
            if dark:
                intensity = self.dim_intensity.select(extra_dim=self.extra_dim)
                logger.info("Showing overlay (intensity=%.2f)", intensity)
                self._overlay.show(intensity)
            else:
                logger.info("Removing overlay")
                self._overlay.hide()
        except Exception:
            logger.exception("Overlay %s failed", "show" if dark else "hide")

    # --- ライフサイクル ---

    def on_start(self) -> None:
        """前面アプリが不明な状態で一度評価して、起動直後から正しい状態にする."""
        self.on_app_opened("", False, "")

    def on_pause(self) -> None:
        self._set_dark(False)

    def on_stop(self) -> None:
        self.on_pause()
        self._screen_time.stop_and_accumulate()
        self.last_tracked_package_id = None

    def status(self) -> dict[str, Any]:
        return {
            "is_currently_dark": self.is_currently_dark,
            "last_tracked_package_id": self.last_tracked_package_id,
            "used_up_ms": self._screen_time.current_total(),
            "daily_color_budget_ms": self.daily_color_budget_ms,
            "tracking": self._screen_time.is_tracking,
        }
