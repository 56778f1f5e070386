"""Local Preferences Adapter

PreferenceStore ABC の JSON ファイル実装。
表示名・ロール・コメント文字サイズを端末ローカルに保存し、セッションをまたいで保持する。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from flyer_tracker.domain.ports import PreferenceStore

logger = logging.getLogger(__name__)

USER_NAME_KEY = "user-name"
USER_ROLE_KEY = "user-role"
FONT_SIZE_KEY = "font-size"


class JsonPreferenceStore(PreferenceStore):
    """単一の JSON ファイルにキー/値を保存する PreferenceStore"""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    def _load(self) -> dict[str, str]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            logger.warning("Ignoring unreadable preferences file: %s", self._path)
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str) -> str | None:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(
            json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        logger.debug("Saved preference: %s", key)
