import platform
import sys
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any

from graydetox.logger import logger
from graydetox.model.models import ServiceState

if sys.platform == "win32":
    from win10toast import ToastNotifier  # type: ignore[import-untyped, unused-ignore]

APP_TITLE = "GrayDetox"


class NotificationLevel(Enum):
    """Notification severity levels used by the service."""

    INFO = "info"
    WARNING = "warning"
    URGENT = "urgent"


@dataclass
class NotificationConfig:
    """Configuration for :class:`NotificationService`."""

    sound: bool = False
    duration_sec: int = 5


class NotificationService:
    """Minimal notification service with history tracking."""

    def __init__(self, config: NotificationConfig | None = None) -> None:
        self.platform = platform.system()
        self.config = config or NotificationConfig()
        self._history: list[dict[str, Any]] = []

    def notify(
        self,
        title: str,
        message: str,
        level: NotificationLevel = NotificationLevel.INFO,
        *,
        sound: bool | None = None,
    ) -> bool:
        """Display a notification and record it.

        On Windows a toast is shown. On other platforms the notification is
        only recorded and ``False`` is returned.
        """
        sound = self.config.sound if sound is None else sound

        success = False
        if self.platform == "Windows":
            try:
                notifier = ToastNotifier()
                notifier.show_toast(  # pyright: ignore[reportUnknownMemberType]
                    title, message, duration=self.config.duration_sec, threaded=True
                )
                success = True
            except Exception:
                logger.exception("Toast notification failed")
        self._history.append(
            {
                "title": title,
                "message": message,
                "level": level.value,
                "sound": sound,
                "timestamp": time.time(),
                "delivered": success,
            },
        )
        return success

    def get_capabilities(self) -> dict[str, Any]:
        return {
            "platform": self.platform,
            "supports_toast": self.platform == "Windows",
        }

    def get_notification_history(self, limit: int | None = None) -> list[dict[str, Any]]:
        """Return a copy of the notification history (newest last)."""
        if limit is None:
            return list(self._history)
        return self._history[-limit:]


_default_service: NotificationService | None = None


def get_notification_service() -> NotificationService:
    """既定の通知サービス（シングルトン）."""
    global _default_service  # noqa: PLW0603
    if _default_service is None:
        _default_service = NotificationService()
    return _default_service


def notify_pause_started(pause_duration_ms: int) -> bool:
    """便利関数: 一時停止の開始."""
    minutes = max(1, round(pause_duration_ms / 60_000))
    return get_notification_service().notify(
        APP_TITLE,
        f"一時停止中です（{minutes}分後に自動で再開します）",
        NotificationLevel.INFO,
    )


def notify_pause_ended() -> bool:
    """便利関数: 一時停止の終了."""
    return get_notification_service().notify(
        APP_TITLE,
        "一時停止が終了しました",
        NotificationLevel.INFO,
    )


def notify_service_state(
    state: ServiceState,
    previous: ServiceState,
    pause_duration_ms: int = 0,
) -> bool:
    """サービス状態の変化を通知する. 停止時は通知しない."""
    if state is ServiceState.PAUSED:
        return notify_pause_started(pause_duration_ms)
    if state is ServiceState.ACTIVE and previous is ServiceState.PAUSED:
        return notify_pause_ended()
    if state is ServiceState.ACTIVE:
        return get_notification_service().notify(APP_TITLE, "有効です", NotificationLevel.INFO)
    return False
