"""Feature capabilities.

A feature declares the set of capabilities it implements in ``capabilities``.
The registry checks the declaration against the feature's members once, at
registration, so the dispatch path never has to ask a feature what it can do.
"""

from __future__ import annotations

from enum import Enum
from typing import ClassVar


class Capability(Enum):
    RESPONDS_TO_APP_OPENED = "RespondsToAppOpened"
    RESPONDS_TO_SCROLL = "RespondsToScroll"
    RESPONDS_TO_SCREEN_OFF = "RespondsToScreenOff"
    HAS_SCHEDULE = "HasSchedule"
    HAS_APP_EXCEPTIONS = "HasAppExceptions"
    TRACKS_SCREEN_TIME = "TracksScreenTime"


# capability -> member the feature has to provide
REQUIRED_MEMBERS: dict[Capability, str] = {
    Capability.RESPONDS_TO_APP_OPENED: "on_app_opened",
    Capability.RESPONDS_TO_SCROLL: "on_scroll_event",
    Capability.RESPONDS_TO_SCREEN_OFF: "on_screen_turned_off",
    Capability.HAS_SCHEDULE: "schedule",
    Capability.HAS_APP_EXCEPTIONS: "exception_list",
    Capability.TRACKS_SCREEN_TIME: "screen_time",
}


class Feature:
    """全機能の基底クラス.

    ライフサイクル: ``on_start`` はディスパッチャー開始時と一時停止明けに、
    ``on_pause`` は一時停止に入ったとき、``on_stop`` はディスパッチャー停止時に呼ばれる。
    """

    feature_id: ClassVar[str] = "feature"
    capabilities: ClassVar[frozenset[Capability]] = frozenset()

    @property
    def id(self) -> str:
        return self.feature_id

    def implements(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def on_start(self) -> None:
        """開始時の評価（既定では何もしない）."""

    def on_pause(self) -> None:
        """一時的な効果を解除する（既定では何もしない）."""

    def on_stop(self) -> None:
        self.on_pause()

    def __repr__(self) -> str:
        caps = ",".join(sorted(c.value for c in self.capabilities))
        return f"<{type(self).__name__} id={self.id} caps=[{caps}]>"


def missing_members(feature: Feature) -> list[str]:
    """宣言した capability に対して実装されていないメンバーを返す."""
    missing = []
    for capability in feature.capabilities:
        member = REQUIRED_MEMBERS[capability]
        if not hasattr(type(feature), member):
            missing.append(member)
    return sorted(missing)
