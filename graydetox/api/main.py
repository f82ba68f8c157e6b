"""FastAPI app hosting the dispatcher and exposing it over HTTP."""

import os
from collections import deque
from typing import Any, Literal, Union

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field, field_validator

from graydetox.engine.dispatch import DispatchService, create_dispatch_service
from graydetox.engine.grayscale import GrayscaleAppsFeature
from graydetox.logger import logger
from graydetox.model.models import (
    AppExceptionList,
    AppExceptionListType,
    AppOpened,
    ScheduleWindow,
    ScreenTurnedOff,
    ScrollEvent,
    ServiceState,
    SystemEvent,
)
from graydetox.ui.notifications import get_notification_service, notify_service_state
from graydetox.ui.overlay import HeadlessOverlay

# FastAPIアプリケーションのインスタンスを作成
app = FastAPI(
    title="GrayDetox Engine",
    description="Grayscale decision engine and daily color budget tracking",
)

# グローバルな状態管理
STATE: dict[str, Any] = {
    "service": None,
    "overlay": None,
    "last_state": ServiceState.INACTIVE,
    "last_event": None,  # 最新のイベントを保存
    "logs": deque(maxlen=100),  # ログを保存 (最大100件)
}

# --- ロギング ---


def log_message(message: str) -> None:
    """ロガーに出力し、ログキューにも追加する."""
    logger.info(message)
    STATE["logs"].append(message)


# --- Pydanticモデル定義 ---


class AppOpenedIn(BaseModel):
    """前面アプリ切り替えイベント."""

    kind: Literal["app_opened"]
    package_id: str = ""
    event_class: str = ""
    is_fullscreen: bool = False
    raw_source_present: bool = True

    def to_event(self) -> AppOpened:
        return AppOpened(
            package_id=self.package_id,
            event_class=self.event_class,
            is_fullscreen=self.is_fullscreen,
            raw_source_present=self.raw_source_present,
        )


class ScrollIn(BaseModel):
    """スクロールイベント."""

    kind: Literal["scroll"]
    view_id: str = ""
    item_count: int = 0
    max_scroll_extent: int = -1
    source_present: bool = True
    event_class: str = ""

    def to_event(self) -> ScrollEvent:
        return ScrollEvent(
            view_id=self.view_id,
            item_count=self.item_count,
            max_scroll_extent=self.max_scroll_extent,
            source_present=self.source_present,
            event_class=self.event_class,
        )


class ScreenOffIn(BaseModel):
    """画面オフ."""

    kind: Literal["screen_off"]

    def to_event(self) -> ScreenTurnedOff:
        return ScreenTurnedOff()


EventIn = Union[AppOpenedIn, ScrollIn, ScreenOffIn]


class KeyIn(BaseModel):
    """ハードウェアキー（離した時点）."""

    code: int
    duration_ms: int = Field(ge=0)


class ScheduleIn(BaseModel):
    start: str
    end: str
    weekdays: list[int] = Field(default_factory=lambda: list(range(7)))

    def to_window(self) -> ScheduleWindow:
        return ScheduleWindow.from_dict(self.model_dump())

    @field_validator("start", "end")
    @classmethod
    def time_must_be_hh_mm(cls, v: str) -> str:
        """HH:MM 形式であること"""
        ScheduleWindow.from_dict({"start": v, "end": v})
        return v

    @field_validator("weekdays")
    @classmethod
    def weekdays_in_range(cls, v: list[int]) -> list[int]:
        """月曜=0 ... 日曜=6"""
        ScheduleWindow.from_dict({"weekdays": v})
        return v


class GrayscaleSettingsUpdate(BaseModel):
    """グレースケール設定の更新リクエスト. 指定された項目だけ書き換える."""

    mode: AppExceptionListType | None = None
    members: list[str] | None = None
    ignore_non_fullscreen: bool | None = None
    daily_color_budget_ms: int | None = Field(default=None, ge=0)
    extra_dim: bool | None = None
    known_fullscreen_packages: list[str] | None = None
    schedule: ScheduleIn | None = None
    clear_schedule: bool = False

    @field_validator("members", "known_fullscreen_packages")
    @classmethod
    def drop_blank_ids(cls, v: list[str] | None) -> list[str] | None:
        """空のアプリIDを取り除く"""
        if v is None:
            return v
        return [item.strip() for item in v if item and item.strip()]


class PauseSettingsUpdate(BaseModel):
    """一時停止ボタンの設定. hardware_key=-1 でキー操作を無効にする."""

    pause_duration_ms: int | None = Field(default=None, gt=0)
    time_between_pauses_ms: int | None = Field(default=None, ge=0)
    hardware_key: int | None = Field(default=None, ge=-1)


# --- アプリケーションのライフサイクルイベント ---


def _ignored_packages_from_env() -> list[str]:
    raw = os.getenv("GRAYDETOX_IGNORED_PACKAGES", "")
    return [p.strip() for p in raw.split(",") if p.strip()]


def _on_state_changed(state: ServiceState) -> None:
    previous: ServiceState = STATE["last_state"]
    STATE["last_state"] = state
    service: DispatchService | None = STATE["service"]
    duration = service.pause.pause_duration_ms if service and service.pause else 0
    notify_service_state(state, previous, duration)
    log_message(f"Service state: {previous.value} -> {state.value}")


# Deprecated on_event usage is temporarily retained for simplicity.
@app.on_event("startup")  # pyright: ignore[reportDeprecated]
async def startup_event() -> None:
    """アプリケーション起動時にディスパッチャーを組み立てて開始."""
    overlay = HeadlessOverlay()
    service = create_dispatch_service(overlay)
    service.add_state_listener(_on_state_changed)
    STATE["overlay"] = overlay
    STATE["service"] = service
    service.start(input_method_packages=_ignored_packages_from_env())


@app.on_event("shutdown")  # pyright: ignore[reportDeprecated]
async def shutdown_event() -> None:
    """停止してスクリーンタイムの書き込みを待つ."""
    service: DispatchService | None = STATE["service"]
    if service is None:
        return
    service.stop()
    grayscale = _grayscale(service)
    if grayscale is not None:
        grayscale.screen_time.persister.flush(timeout=5)
    STATE["service"] = None
    STATE["overlay"] = None


def _require_service() -> DispatchService:
    service: DispatchService | None = STATE["service"]
    if service is None:
        raise HTTPException(status_code=503, detail="Dispatcher not available")
    return service


def _grayscale(service: DispatchService) -> GrayscaleAppsFeature | None:
    feature = service.registry.get(GrayscaleAppsFeature.feature_id)
    return feature if isinstance(feature, GrayscaleAppsFeature) else None


def _overlay_status() -> dict[str, Any]:
    overlay: HeadlessOverlay | None = STATE["overlay"]
    return overlay.status() if overlay else {"visible": False, "intensity": 0.0}


# --- APIエンドポイント定義 ---


@app.post("/events")
async def ingest_event(event: EventIn) -> dict[str, Any]:
    """イベントを取り込み、アクティブな機能に配送する."""
    service = _require_service()
    system_event: SystemEvent = event.to_event()
    service.dispatch(system_event)
    STATE["last_event"] = event.model_dump()
    return {
        "ok": True,
        "state": service.current_service_state().value,
        "overlay": _overlay_status(),
    }


@app.post("/keys")
async def ingest_key(key: KeyIn) -> dict[str, Any]:
    """ハードウェアキーを処理する."""
    service = _require_service()
    consumed = service.handle_key_event(key.code, key.duration_ms)
    return {"ok": True, "consumed": consumed, "state": service.current_service_state().value}


@app.post("/service/start")
async def start_service() -> dict[str, Any]:
    service = _require_service()
    service.start(input_method_packages=_ignored_packages_from_env())
    return {"ok": True, "state": service.current_service_state().value}


@app.post("/service/stop")
async def stop_service() -> dict[str, Any]:
    service = _require_service()
    service.stop()
    return {"ok": True, "state": service.current_service_state().value}


@app.post("/pause/toggle")
async def toggle_pause() -> dict[str, Any]:
    """一時停止/再開を切り替える."""
    service = _require_service()
    changed = service.toggle_pause()
    return {"ok": changed, "state": service.current_service_state().value}


@app.get("/status")
async def get_current_status() -> dict[str, Any]:
    """現在のシステム状態を取得する."""
    service = _require_service()
    features: dict[str, Any] = {}
    for feature in service.registry.features:
        info: dict[str, Any] = {"active": service.registry.is_active(feature.id)}
        status = getattr(feature, "status", None)
        if callable(status):
            info.update(status())
        features[feature.id] = info
    return {
        "state": service.current_service_state().value,
        "overlay": _overlay_status(),
        "features": features,
        "notifications": get_notification_service().get_capabilities(),
    }


@app.put("/settings/grayscale")
async def update_grayscale_settings(req: GrayscaleSettingsUpdate) -> dict[str, Any]:
    """グレースケール設定を更新する."""
    service = _require_service()
    grayscale = _grayscale(service)
    if grayscale is None:
        raise HTTPException(status_code=404, detail="Grayscale feature not registered")

    values: dict[str, Any] = {}
    if req.mode is not None or req.members is not None:
        current = grayscale.exception_list
        values["exception_list"] = AppExceptionList(
            mode=req.mode or current.mode,
            members=frozenset(req.members) if req.members is not None else current.members,
        )
    for name in (
        "ignore_non_fullscreen",
        "daily_color_budget_ms",
        "extra_dim",
        "known_fullscreen_packages",
    ):
        value = getattr(req, name)
        if value is not None:
            values[name] = value
    if req.clear_schedule:
        values["schedule"] = None
    elif req.schedule is not None:
        values["schedule"] = req.schedule.to_window()

    grayscale.update_settings(**values)
    log_message(f"Grayscale settings updated: {sorted(values)}")
    return {"ok": True, "updated": sorted(values)}


@app.put("/settings/pause")
async def update_pause_settings(req: PauseSettingsUpdate) -> dict[str, Any]:
    service = _require_service()
    if service.pause is None:
        raise HTTPException(status_code=404, detail="Pause feature not registered")
    values = req.model_dump(exclude_none=True)
    service.pause.update_settings(**values)
    log_message(f"Pause settings updated: {sorted(values)}")
    return {"ok": True, "updated": sorted(values)}


# --- モニタリング用エンドポイント ---


@app.get("/api/monitoring_data")
async def get_monitoring_data() -> dict[str, Any]:
    """モニタリング用に最新データを提供する."""
    service: DispatchService | None = STATE["service"]
    return {
        "last_event": STATE["last_event"],
        "logs": list(STATE["logs"]),
        "state": service.current_service_state().value if service else ServiceState.INACTIVE.value,
        "overlay": _overlay_status(),
    }
