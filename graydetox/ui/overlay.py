"""Host-side display overlay.

Rendering is the host platform's business; this overlay keeps the visible
state and intensity so the HTTP host can report them, and logs every change.
"""

from __future__ import annotations

import time
from typing import Any

from graydetox.logger import logger


class HeadlessOverlay:
    """描画しないオーバーレイ. 表示状態と濃さだけを保持する."""

    def __init__(self) -> None:
        self._visible = False
        self.intensity = 0.0
        self.changed_at: float | None = None

    def show(self, intensity: float) -> None:
        """表示する. 表示中なら濃さだけ更新する."""
        intensity = max(0.0, min(1.0, float(intensity)))
        if self._visible and intensity == self.intensity:
            return
        if self._visible:
            logger.info("Overlay intensity %.2f -> %.2f", self.intensity, intensity)
        else:
            logger.info("Overlay shown (intensity=%.2f)", intensity)
        self._visible = True
        self.intensity = intensity
        self.changed_at = time.time()

    def hide(self) -> None:
        if not self._visible:
            return
        self._visible = False
        self.changed_at = time.time()
        logger.info("Overlay removed")

    def is_visible(self) -> bool:
        return self._visible

    def status(self) -> dict[str, Any]:
        return {
            "visible": self._visible,
            "intensity": self.intensity if self._visible else 0.0,
            "changed_at": self.changed_at,
        }
