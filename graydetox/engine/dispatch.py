"""Event dispatcher and service state machine.

The dispatcher receives ``SystemEvent`` values one at a time, filters them and
fans them out to the active features that implement the matching capability.
Nothing on this path raises to the caller: a failing feature is logged and
the remaining features still receive the event.
"""

from __future__ import annotations

import threading
from typing import Callable, Iterable

from graydetox.logger import logger
from graydetox.model.models import (
    AppOpened,
    HardwareKey,
    ScreenTurnedOff,
    ScrollEvent,
    ServiceState,
    SystemEvent,
)

from .capabilities import Capability, Feature
from .clock import SystemClock
from .grayscale import GrayscaleAppsFeature
from .pause import PauseButtonFeature
from .ports import Clock, DisplayOverlay, KeyEventListener, SettingsStore
from .registry import ACTIVE_FEATURES_KEY, FeatureRegistry
from .settings import create_settings_store

# IME・音量パネル・最近のアプリなど、前面アプリの切り替えとして扱わないウィンドウ
IGNORED_EVENT_CLASSES = frozenset(
    {
        "android.inputmethodservice.SoftInputWindow",
        "com.android.systemui.volume",
        "com.android.quickstep.RecentsActivity",
    }
)

StateListener = Callable[[ServiceState], None]


class DispatchService:
    def __init__(self, registry: FeatureRegistry, pause: PauseButtonFeature | None = None) -> None:
        self.registry = registry
        self.pause = pause
        self.on_key_event_listener: KeyEventListener | None = None

        self._running = False
        self._last_package = ""
        self._ignored_packages: set[str] = set()
        self._state = ServiceState.INACTIVE
        self._state_listeners: list[StateListener] = []
        # 自動再開タイマーは別スレッドから来るため、状態変更はこのロックで直列化する
        self._lock = threading.RLock()

    # --- 状態 ---

    def current_service_state(self) -> ServiceState:
        """現在の状態を毎回計算して返す."""
        if not self._running:
            return ServiceState.INACTIVE
        pause = self._active_pause()
        if pause is not None and pause.is_pausing():
            return ServiceState.PAUSED
        return ServiceState.ACTIVE

    def _active_pause(self) -> PauseButtonFeature | None:
        """一時停止機能が登録済みかつアクティブな場合だけ返す."""
        pause = self.pause
        if pause is None or not self.registry.is_active(pause.id):
            return None
        return pause

    def add_state_listener(self, listener: StateListener) -> None:
        self._state_listeners.append(listener)

    def _update_state(self) -> ServiceState:
        state = self.current_service_state()
        if state is not self._state:
            logger.info("Service state %s -> %s", self._state.value, state.value)
            self._state = state
            for listener in list(self._state_listeners):
                try:
                    listener(state)
                except Exception:
                    logger.exception("State listener failed")
        return state

    # --- ライフサイクル ---

    def start(self, input_method_packages: Iterable[str] = ()) -> None:
        """開始する。入力メソッドのパッケージは無視リストに入る."""
        with self._lock:
            if self._running:
                logger.info("Dispatcher already running")
                return
            self._running = True
            self._last_package = ""
            self._ignored_packages = set(input_method_packages)
            logger.info(
                "Dispatcher started (%d active features, %d ignored packages)",
                len(self.registry.active_features()),
                len(self._ignored_packages),
            )
            for feature in self.registry.active_features():
                self._call(feature, "on_start")
            self._update_state()

    def stop(self) -> None:
        with self._lock:
            if not self._running:
                return
            self._pause_features(stop=True)
            if self.pause is not None:
                # 一時停止中に機能が無効化されていてもタイマーは止める
                self.pause.end_pause()
            self._running = False
            self._last_package = ""
            self._ignored_packages.clear()
            logger.info("Dispatcher stopped")
            self._update_state()

    # --- イベント処理 ---

    def dispatch(self, event: SystemEvent) -> None:
        try:
            with self._lock:
                if self.current_service_state() is not ServiceState.ACTIVE:
                    return
                if isinstance(event, AppOpened):
                    self._handle_app_opened(event)
                elif isinstance(event, ScrollEvent):
                    self._handle_scroll_event(event)
                elif isinstance(event, ScreenTurnedOff):
                    self._handle_screen_turned_off()
                elif isinstance(event, HardwareKey):
                    self.handle_key_event(event.code, event.press_duration_ms)
                else:
                    logger.debug("Unknown event type: %r", event)
        except Exception:
            logger.exception("Dispatch failed for %r", event)

    def _handle_app_opened(self, event: AppOpened) -> None:
        package_id = event.package_id
        if not package_id or package_id == self._last_package:
            # パッケージ名なし、または同じアプリからの連続イベント
            return
        self._last_package = package_id

        if event.event_class in IGNORED_EVENT_CLASSES or package_id in self._ignored_packages:
            return

        for feature in self.registry.active_with(Capability.RESPONDS_TO_APP_OPENED):
            self._call(feature, "on_app_opened", package_id, event.is_fullscreen, event.event_class)

    def _handle_scroll_event(self, event: ScrollEvent) -> None:
        size = event.scroll_view_size
        # 情報が少なすぎるスクロールイベントは捨てる
        if not event.source_present or size == -1:
            return
        scroll_view_id = scroll_view_id_for(event)
        if scroll_view_id is None:
            return
        for feature in self.registry.active_with(Capability.RESPONDS_TO_SCROLL):
            self._call(feature, "on_scroll_event", scroll_view_id, size, event)

    def _handle_screen_turned_off(self) -> None:
        for feature in self.registry.active_with(Capability.RESPONDS_TO_SCREEN_OFF):
            self._call(feature, "on_screen_turned_off")

    def handle_key_event(self, code: int, duration_ms: int) -> bool:
        """ハードウェアキー. 消費した場合は True."""
        try:
            with self._lock:
                listener = self.on_key_event_listener
                if listener is not None and listener(code, duration_ms):
                    return True
                pause = self._active_pause()
                if (
                    self._running
                    and pause is not None
                    and pause.is_trigger(code, duration_ms)
                ):
                    self.toggle_pause()
                    return True
                return False
        except Exception:
            logger.exception("Key event handling failed (code=%s)", code)
            return False

    # --- 一時停止 ---

    def toggle_pause(self) -> bool:
        """一時停止/再開を切り替える. 状態が変わった場合は True."""
        try:
            with self._lock:
                pause = self._active_pause()
                if not self._running or pause is None:
                    return False
                if pause.is_pausing():
                    pause.end_pause()
                    self._resume_features()
                    self._update_state()
                    return True
                if not pause.can_pause():
                    logger.warning("Pause refused: minimum time between pauses has not elapsed")
                    return False
                pause.begin_pause(self._on_pause_expired)
                self._pause_features(stop=False)
                self._update_state()
                return True
        except Exception:
            logger.exception("Toggling pause failed")
            return False

    def _on_pause_expired(self, generation: int) -> None:
        try:
            with self._lock:
                # 期限切れ判定と手動の再開・再一時停止が競合した場合は古いタイマーを無視する
                if self.pause is None or not self.pause.is_current(generation):
                    return
                self.pause.end_pause()
                if self._running:
                    self._resume_features()
                self._update_state()
        except Exception:
            logger.exception("Auto-resume failed")

    def _pause_features(self, *, stop: bool) -> None:
        """アクティブな機能の一時的な効果をすべて解除する."""
        for feature in self.registry.active_features():
            if stop:
                self._call(feature, "on_stop")
            elif feature is not self.pause:
                self._call(feature, "on_pause")

    def _resume_features(self) -> None:
        for feature in self.registry.active_features():
            if feature is not self.pause:
                self._call(feature, "on_start")

    @staticmethod
    def _call(feature: Feature, method: str, *args: object) -> None:
        try:
            getattr(feature, method)(*args)
        except Exception:
            logger.exception("Feature %s failed in %s", feature.id, method)


def scroll_view_id_for(event: ScrollEvent) -> str | None:
    """イベントクラスとビューIDから安定したスクロールビューIDを作る."""
    if not event.view_id:
        return None
    if event.event_class:
        return f"{event.event_class}#{event.view_id}"
    return event.view_id


def create_dispatch_service(
    overlay: DisplayOverlay,
    store: SettingsStore | None = None,
    clock: Clock | None = None,
) -> DispatchService:
    """既定の機能構成でディスパッチャーを組み立てるファクトリ関数.

    ストアに ``active_features`` が無ければ、全機能を有効として初期化する。
    """
    store = store if store is not None else create_settings_store()
    clock = clock or SystemClock()
    grayscale = GrayscaleAppsFeature(clock=clock, store=store, overlay=overlay)
    pause = PauseButtonFeature(clock=clock, store=store)
    registry = FeatureRegistry(store, [grayscale, pause])
    if store.get(ACTIVE_FEATURES_KEY) is None:
        store.set(ACTIVE_FEATURES_KEY, [grayscale.id, pause.id])
    return DispatchService(registry, pause=pause)
