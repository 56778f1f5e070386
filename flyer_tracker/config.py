"""設定管理 - 環境変数の型安全な読み込み"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

from flyer_tracker.domain.errors import ConfigLoadError


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(v.strip() for v in raw.split(",") if v.strip())


@dataclass(frozen=True)
class AppConfig:
    """アプリケーション設定"""
    bucket_name: str
    project_id: str = ""
    collection: str = "projects"
    # 同日開催の並び順に使うイベント名リスト（新規作成フォームの選択肢も兼ねる）
    event_names: tuple[str, ...] = field(default_factory=tuple)
    preferences_path: str = "~/.flyer_tracker/preferences.json"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """環境変数から設定を読み込む"""
        load_dotenv()

        bucket_name = os.getenv("GCS_BUCKET_NAME")
        if not bucket_name:
            raise ConfigLoadError("GCS_BUCKET_NAME is not set in environment")

        return cls(
            bucket_name=bucket_name,
            project_id=os.getenv("PROJECT_ID", ""),
            collection=os.getenv("PROJECTS_COLLECTION", "projects"),
            event_names=_split_csv(os.getenv("EVENT_NAMES", "")),
            preferences_path=os.getenv(
                "PREFERENCES_PATH", "~/.flyer_tracker/preferences.json"
            ),
        )
