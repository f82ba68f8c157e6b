import sys
import time
from typing import Any, cast

import psutil

if sys.platform == "win32":
    import pywintypes  # pyright: ignore[reportMissingImports]
    import win32api  # pyright: ignore[reportMissingImports]
    import win32gui  # pyright: ignore[reportMissingImports]
    import win32process  # pyright: ignore[reportMissingImports]
else:  # pragma: no cover
    pywintypes = cast("Any", None)
    win32api = cast("Any", None)
    win32gui = cast("Any", None)
    win32process = cast("Any", None)

EMPTY_WINDOW: dict[str, Any] = {
    "active_app": None,
    "title": None,
    "window_class": "",
    "fullscreen": False,
}


def is_fullscreen_window(hwnd: int) -> bool:
    """ウィンドウがモニター全体を覆っているか."""
    try:
        window_rect = tuple(win32gui.GetWindowRect(hwnd))
        monitor = win32api.MonitorFromWindow(hwnd)
        monitor_rect = tuple(win32api.GetMonitorInfo(monitor)["Monitor"])
    except pywintypes.error:
        return False
    return window_rect == monitor_rect


def get_active_app() -> dict[str, Any]:
    """Return the foreground application on Windows.

    ``active_app`` is the process name and is used as the app id.
    """
    if sys.platform != "win32":
        return dict(EMPTY_WINDOW)

    hwnd = win32gui.GetForegroundWindow()
    if not hwnd:
        return dict(EMPTY_WINDOW)

    try:
        title = win32gui.GetWindowText(hwnd)
        window_class = win32gui.GetClassName(hwnd)
        _, pid = win32process.GetWindowThreadProcessId(hwnd)
    except pywintypes.error:
        return dict(EMPTY_WINDOW)

    try:
        process = psutil.Process(pid)
        process_name = process.name()
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return dict(EMPTY_WINDOW)
    return {
        "active_app": process_name,
        "title": title,
        "window_class": window_class,
        "fullscreen": is_fullscreen_window(hwnd),
    }


if __name__ == "__main__":  # pragma: no cover
    # テスト実行
    for _ in range(3):
        print(get_active_app())  # noqa: T201
        time.sleep(1)
