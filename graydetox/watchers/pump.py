"""Event pump: turns foreground-window and idle polling into HTTP events.

Only changes are sent: a new foreground app becomes ``app_opened``; crossing
the idle threshold becomes ``screen_off`` once until input resumes.
"""

from __future__ import annotations

import os
import time
from dataclasses import dataclass
from typing import Any

import requests

from graydetox.logger import logger
from graydetox.watchers.active_window import get_active_app
from graydetox.watchers.idle import get_idle_ms, idle_off_threshold_ms

# HTTP status codes
HTTP_OK = 200

DEFAULT_API_URL = "http://localhost:5577"
DEFAULT_POLL_INTERVAL_SEC = 1.0


def api_url() -> str:
    return os.getenv("GRAYDETOX_API_URL", DEFAULT_API_URL).rstrip("/")


def poll_interval_sec() -> float:
    return float(os.getenv("GRAYDETOX_POLL_INTERVAL", str(DEFAULT_POLL_INTERVAL_SEC)))


@dataclass
class PumpState:
    last_app: str | None = None
    screen_off: bool = False


def build_events(
    window: dict[str, Any],
    idle_ms: int,
    threshold_ms: int,
    state: PumpState,
) -> list[dict[str, Any]]:
    """ポーリング結果から送るべきイベントを作る. ``state`` を更新する."""
    if idle_ms >= threshold_ms:
        if state.screen_off:
            return []
        state.screen_off = True
        return [{"kind": "screen_off"}]
    state.screen_off = False

    app = window.get("active_app")
    if not app or app == state.last_app:
        return []
    state.last_app = app
    return [
        {
            "kind": "app_opened",
            "package_id": app,
            "event_class": window.get("window_class") or "",
            "is_fullscreen": bool(window.get("fullscreen")),
        }
    ]


def send_event(event_data: dict[str, Any], base_url: str | None = None) -> dict[str, Any] | None:
    """イベントデータをAPIに送信

    Returns:
        成功時はAPIのレスポンス、失敗時は None

    """
    url = f"{base_url or api_url()}/events"
    try:
        response = requests.post(url, json=event_data, timeout=5)
    except requests.RequestException as e:
        logger.warning("Failed to send event to %s: %s", url, e)
        return None

    status_code = int(getattr(response, "status_code", 0))
    if status_code != HTTP_OK:
        logger.warning("API rejected event %s (status=%d)", event_data.get("kind"), status_code)
        return None
    result: dict[str, Any] = response.json()
    return result


def check_api_availability(base_url: str | None = None) -> bool:
    """APIの可用性をチェック."""
    try:
        response = requests.get(f"{base_url or api_url()}/status", timeout=3)
    except requests.RequestException:
        return False
    return int(getattr(response, "status_code", 0)) == HTTP_OK


def poll_once(state: PumpState, base_url: str | None = None) -> list[dict[str, Any]]:
    """一回分ポーリングして送信する. 送信したイベントを返す."""
    events = build_events(get_active_app(), get_idle_ms(), idle_off_threshold_ms(), state)
    for event in events:
        result = send_event(event, base_url)
        logger.info("Sent %s -> %s", event, result)
    return events


def main() -> None:
    """メイン関数."""
    base_url = api_url()
    if not check_api_availability(base_url):
        logger.error("API is not available at %s", base_url)
        return
    state = PumpState()
    interval = poll_interval_sec()
    logger.info("Event pump started (api=%s, interval=%.1fs)", base_url, interval)
    while True:
        poll_once(state, base_url)
        time.sleep(interval)


if __name__ == "__main__":
    main()
