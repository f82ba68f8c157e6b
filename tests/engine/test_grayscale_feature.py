from datetime import time

import pytest

from graydetox.engine.capabilities import Capability, missing_members
from graydetox.engine.grayscale import GrayscaleAppsFeature, should_darken
from graydetox.model.models import (
    AppExceptionList,
    AppExceptionListType,
    DimIntensity,
    ScheduleWindow,
)


def exclude(*apps: str) -> AppExceptionList:
    return AppExceptionList(AppExceptionListType.EXCLUDE, frozenset(apps))


def include_only(*apps: str) -> AppExceptionList:
    return AppExceptionList(AppExceptionListType.INCLUDE_ONLY, frozenset(apps))


class TestShouldDarken:
    """予算の境界判定"""

    @pytest.mark.parametrize(
        ("total", "budget", "expected"),
        [
            (0, 0, True),
            (59_999, 60_000, False),
            (60_000, 60_000, True),
            (60_001, 60_000, True),
        ],
    )
    def test_inclusive_threshold(self, total, budget, expected):
        assert should_darken(total, budget) is expected


class TestGrayscaleAppsFeature:
    """前面アプリごとのグレースケール判定"""

    def test_declared_capabilities_are_implemented(self, grayscale):
        assert missing_members(grayscale) == []
        assert grayscale.implements(Capability.RESPONDS_TO_APP_OPENED)
        assert not grayscale.implements(Capability.RESPONDS_TO_SCROLL)

    def test_zero_budget_darkens_once_per_transition(self, grayscale, overlay):
        """予算0: 最初のイベントで暗くなり、show は遷移ごとに一回だけ"""
        for _ in range(5):
            grayscale.on_app_opened("com.example.feed", True, "MainActivity")

        assert grayscale.is_currently_dark is True
        assert overlay.show_count == 1
        assert overlay.hide_count == 0

    def test_scenario_open_wait_screen_off(self, grayscale, overlay, clock, session):
        # Given: 対象アプリが全画面で開かれる
        grayscale.on_app_opened("x", True, "")
        assert overlay.calls == [("show", 0.9)]

        # When: 5秒後に画面オフ
        clock.advance(5000)
        grayscale.on_screen_turned_off()

        # Then: 5秒が加算され、計測は閉じている
        assert session.current_total() == 5000
        assert session.tracking_since_ms == 0
        assert overlay.show_count == 1

    def test_budget_boundary_through_app_switches(self, grayscale, overlay, clock):
        grayscale.update_settings(daily_color_budget_ms=60_000)

        grayscale.on_app_opened("x", True, "")
        clock.advance(59_999)
        grayscale.on_app_opened("y", True, "")
        assert grayscale.is_currently_dark is False

        clock.advance(1)
        grayscale.on_app_opened("x", True, "")
        assert grayscale.is_currently_dark is True
        assert overlay.show_count == 1

    def test_switching_targeted_apps_closes_previous_session(self, grayscale, clock, session):
        grayscale.update_settings(daily_color_budget_ms=3_600_000)
        grayscale.on_app_opened("x", True, "")
        clock.advance(2000)

        grayscale.on_app_opened("y", True, "")

        assert session.used_up_ms == 2000
        assert session.is_tracking
        assert grayscale.last_tracked_package_id == "y"

    def test_untargeted_non_fullscreen_is_ignored(self, grayscale, overlay, session):
        """キーボード等: 状態は変えず、計測だけ閉じる"""
        grayscale.update_settings(exception_list=exclude("com.keyboard"))
        grayscale.on_app_opened("x", True, "")

        grayscale.on_app_opened("com.keyboard", False, "")

        assert grayscale.is_currently_dark is True
        assert overlay.hide_count == 0
        assert not session.is_tracking
        assert grayscale.last_tracked_package_id is None

    def test_untargeted_fullscreen_app_lightens(self, grayscale, overlay):
        grayscale.update_settings(exception_list=exclude("com.game"))
        grayscale.on_app_opened("x", True, "")

        grayscale.on_app_opened("com.game", True, "")

        assert grayscale.is_currently_dark is False
        assert overlay.calls == [("show", 0.9), ("hide", None)]

    def test_targeted_app_bypasses_fullscreen_check(self, grayscale):
        grayscale.update_settings(exception_list=include_only("x"))

        grayscale.on_app_opened("x", False, "")

        assert grayscale.is_currently_dark is True

    def test_known_fullscreen_package_counts_as_fullscreen(self, grayscale, overlay):
        grayscale.update_settings(exception_list=include_only("x"))
        grayscale.on_app_opened("x", True, "")

        # 全画面を報告しない既知アプリ → 全画面扱いで明るく戻す
        grayscale.on_app_opened("com.instagram.android", False, "")

        assert grayscale.is_currently_dark is False
        assert overlay.hide_count == 1

    def test_known_fullscreen_packages_are_configurable(self, grayscale):
        grayscale.update_settings(
            exception_list=include_only("x"),
            known_fullscreen_packages=["com.custom.player"],
        )
        grayscale.on_app_opened("x", True, "")

        grayscale.on_app_opened("com.instagram.android", False, "")
        assert grayscale.is_currently_dark is True

        grayscale.on_app_opened("com.custom.player", False, "")
        assert grayscale.is_currently_dark is False

    def test_ignore_non_fullscreen_disabled_lightens_for_any_untargeted(self, grayscale):
        grayscale.update_settings(exception_list=include_only("x"), ignore_non_fullscreen=False)
        grayscale.on_app_opened("x", True, "")

        grayscale.on_app_opened("com.keyboard", False, "")

        assert grayscale.is_currently_dark is False

    def test_outside_schedule_is_treated_as_untargeted(self, grayscale, overlay, session):
        """スケジュール外（月曜 9:00 に 22:00-06:00）は暗くしない"""
        grayscale.update_settings(schedule=ScheduleWindow(start=time(22, 0), end=time(6, 0)))

        grayscale.on_app_opened("x", True, "")

        assert grayscale.is_currently_dark is False
        assert overlay.calls == []
        assert not session.is_tracking

    def test_inside_schedule_darkens(self, grayscale):
        grayscale.update_settings(
            schedule=ScheduleWindow(start=time(8, 0), end=time(17, 0), weekdays=frozenset({0}))
        )

        grayscale.on_app_opened("x", True, "")

        assert grayscale.is_currently_dark is True

    def test_normal_dim_intensity(self, grayscale, overlay):
        grayscale.update_settings(extra_dim=False)

        grayscale.on_app_opened("x", True, "")

        assert overlay.calls == [("show", 0.7)]

    def test_custom_dim_intensity(self, clock, store, overlay, session):
        feature = GrayscaleAppsFeature(
            clock, store, overlay, session=session, dim_intensity=DimIntensity(0.5, 0.6)
        )
        feature.on_app_opened("x", True, "")
        assert overlay.calls == [("show", 0.6)]

    def test_overlay_failure_keeps_intended_state(self, grayscale, overlay):
        """描画に失敗しても判定状態は更新され、同じ状態の間は再試行しない"""
        overlay.fail = True

        grayscale.on_app_opened("x", True, "")
        grayscale.on_app_opened("y", True, "")

        assert grayscale.is_currently_dark is True
        assert overlay.show_count == 1

    def test_on_pause_hides_without_touching_session(self, grayscale, overlay, session):
        grayscale.on_app_opened("x", True, "")

        grayscale.on_pause()

        assert grayscale.is_currently_dark is False
        assert overlay.hide_count == 1
        assert session.is_tracking

    def test_on_stop_closes_session(self, grayscale, overlay, session, clock):
        grayscale.on_app_opened("x", True, "")
        clock.advance(1500)

        grayscale.on_stop()

        assert overlay.visible is False
        assert not session.is_tracking
        assert session.used_up_ms == 1500
        assert grayscale.last_tracked_package_id is None

    def test_on_start_reevaluates_with_neutral_app(self, grayscale, overlay):
        grayscale.update_settings(exception_list=include_only("x"), ignore_non_fullscreen=False)
        grayscale.on_app_opened("x", True, "")

        grayscale.on_start()

        assert grayscale.is_currently_dark is False
        assert overlay.hide_count == 1

    def test_settings_are_read_from_store_each_time(self, grayscale, store):
        store.set("grayscale_apps.exception_list", {"mode": "INCLUDE_ONLY", "members": ["a"]})

        assert grayscale.exception_list.targets("a") is True
        assert grayscale.exception_list.targets("b") is False

    def test_update_settings_stores_json_values(self, grayscale, store):
        grayscale.update_settings(
            exception_list=exclude("b", "a"),
            schedule=ScheduleWindow(start=time(22, 0), end=time(6, 30)),
        )

        assert store.get("grayscale_apps.exception_list") == {
            "mode": "EXCLUDE",
            "members": ["a", "b"],
        }
        assert store.get("grayscale_apps.schedule") == {
            "start": "22:00",
            "end": "06:30",
            "weekdays": [0, 1, 2, 3, 4, 5, 6],
        }

    def test_status(self, grayscale, clock):
        grayscale.on_app_opened("x", True, "")
        clock.advance(250)

        status = grayscale.status()

        assert status["is_currently_dark"] is True
        assert status["last_tracked_package_id"] == "x"
        assert status["used_up_ms"] == 250
        assert status["tracking"] is True
