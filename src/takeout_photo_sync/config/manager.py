"""設定管理器。"""

from __future__ import annotations

import copy
import json
from pathlib import Path
from typing import Any, Optional

from . import defaults
from .schema import validate_config


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _lookup(config: dict[str, Any], key: str) -> tuple[bool, Any]:
    current: Any = config
    for part in key.split("."):
        if not isinstance(current, dict) or part not in current:
            return False, None
        current = current[part]
    return True, current


def _assign(config: dict[str, Any], key: str, value: Any) -> None:
    *parents, leaf = key.split(".")
    current = config
    for part in parents:
        current = current.setdefault(part, {})
    current[leaf] = value


class ConfigManager:
    """三層設定：內建預設、使用者 JSON 檔、執行期覆寫（例如 CLI 旗標）。"""

    def __init__(self, user_config_path: Optional[Path] = None) -> None:
        self._defaults = copy.deepcopy(defaults.DEFAULT_CONFIG)
        self._user = self._read_user_config(user_config_path) if user_config_path else {}
        self._runtime: dict[str, Any] = {}
        self._config = _deep_merge(self._defaults, self._user)

    @staticmethod
    def _read_user_config(path: Path) -> dict[str, Any]:
        if not path.exists():
            return {}
        with path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict):
            raise ValueError(f"設定檔必須是 JSON 物件: {path}")
        return payload

    def get(self, key: str, default: Any = None) -> Any:
        found, value = _lookup(self._config, key)
        return value if found else default

    def get_list(self, key: str) -> list[Any]:
        """相簿篩選之類的清單設定；未設定或為 null 時回傳空清單。"""
        value = self.get(key)
        return list(value) if value else []

    def set(self, key: str, value: Any) -> None:
        _assign(self._runtime, key, value)
        self._config = _deep_merge(_deep_merge(self._defaults, self._user), self._runtime)

    def validate_config(self) -> list[str]:
        return validate_config(self._config)

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._config)
