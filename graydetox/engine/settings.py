"""Key-value settings stores.

Values are JSON-compatible. ``get`` returns a private copy, so a reader never
observes a value that a concurrent writer is still modifying.
"""

from __future__ import annotations

import copy
import json
import os
import threading
from pathlib import Path
from typing import Any

from graydetox.logger import logger


class InMemorySettingsStore:
    """プロセス内だけで保持するストア（テスト・一時利用向け）."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = copy.deepcopy(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            if key not in self._values:
                return default
            return copy.deepcopy(self._values[key])

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = copy.deepcopy(value)

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return copy.deepcopy(self._values)


class JsonSettingsStore(InMemorySettingsStore):
    """JSONファイルに永続化するストア.

    書き込みは一時ファイル経由で置き換えるため、途中で落ちても壊れたファイルは残らない。
    ファイル書き込み中も ``get`` は待たされない。
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)
        # ファイル書き込みの順序を保つ。値の読み書きは _lock
        self._write_lock = threading.Lock()
        super().__init__(self._load())

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open(encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            msg = f"settings file is unreadable: {self.path}"
            raise RuntimeError(msg) from e
        if not isinstance(data, dict):
            msg = f"settings file must contain a JSON object: {self.path}"
            raise RuntimeError(msg)
        return data

    def set(self, key: str, value: Any) -> None:
        with self._write_lock:
            with self._lock:
                self._values[key] = copy.deepcopy(value)
                values = copy.deepcopy(self._values)
            self._write_file(values)

    def _write_file(self, values: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        with tmp_path.open("w", encoding="utf-8") as f:
            json.dump(values, f, ensure_ascii=False, indent=2, sort_keys=True)
        os.replace(tmp_path, self.path)


def create_settings_store(path: str | None = None) -> InMemorySettingsStore:
    """設定ストアのファクトリ関数.

    環境変数で設定（任意）:
    - GRAYDETOX_SETTINGS_PATH: JSONファイルのパス。未設定ならメモリ上のみ
    """
    resolved = path or os.getenv("GRAYDETOX_SETTINGS_PATH")
    if not resolved:
        logger.info("No settings path configured, using in-memory settings")
        return InMemorySettingsStore()
    logger.info("Using settings file %s", resolved)
    return JsonSettingsStore(resolved)
