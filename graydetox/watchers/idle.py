"""Idle detection (Windows uses LASTINPUTINFO; others report 0).

The pump treats a long enough idle period as the screen being off.
"""

from __future__ import annotations

import os
import sys
from typing import Any, ClassVar

DEFAULT_IDLE_OFF_MS = 5 * 60_000

if sys.platform == "win32":
    from ctypes import Structure, byref, sizeof, windll, wintypes

    class LASTINPUTINFO(Structure):
        """Windows LASTINPUTINFO structure."""

        _fields_: ClassVar[Any] = [
            ("cbSize", wintypes.UINT),
            ("dwTime", wintypes.DWORD),
        ]

    def get_idle_ms() -> int:
        """最後の入力からの経過時間をミリ秒で取得（Windows）。"""
        lii = LASTINPUTINFO()
        lii.cbSize = sizeof(LASTINPUTINFO)
        try:
            ok = windll.user32.GetLastInputInfo(byref(lii))
        except OSError:
            return 0
        else:
            if ok:
                current_tick = int(windll.kernel32.GetTickCount())
                return max(0, int(current_tick - lii.dwTime))
            return 0

else:

    def get_idle_ms() -> int:
        """非Windowsでは 0 を返すフォールバック実装。"""
        return 0


def idle_off_threshold_ms() -> int:
    """GRAYDETOX_IDLE_OFF_MS（既定5分）."""
    return int(os.getenv("GRAYDETOX_IDLE_OFF_MS", str(DEFAULT_IDLE_OFF_MS)))


def is_idle(threshold_ms: int | None = None) -> bool:
    """指定した閾値を超えてアイドル状態かチェック."""
    if threshold_ms is None:
        threshold_ms = idle_off_threshold_ms()
    return get_idle_ms() >= threshold_ms
