"""Factory - 依存性注入の組み立て

CLI 用に Adapter と Service を組み立てる（API は deps.py で同じことを行う）。
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from google.cloud import firestore, storage

from flyer_tracker.adapters.cloud_storage import GCSBlobStorage
from flyer_tracker.adapters.firestore_repository import (
    FirestoreChangeFeed,
    FirestoreProjectRepository,
)
from flyer_tracker.adapters.local_preferences import JsonPreferenceStore
from flyer_tracker.config import AppConfig
from flyer_tracker.services.live_projects import LiveProjectList
from flyer_tracker.services.project_service import ProjectService

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppContext:
    """組み立て済みの依存一式"""

    config: AppConfig
    service: ProjectService
    live: LiveProjectList
    preferences: JsonPreferenceStore


def create_context(config: AppConfig | None = None) -> AppContext:
    """
    Firestore / GCS クライアントから ProjectService と LiveProjectList を生成。

    Args:
        config: アプリケーション設定（Noneの場合は環境変数から読み込み）

    Raises:
        ConfigLoadError: 必須設定が不足している場合
    """
    if config is None:
        config = AppConfig.from_env()

    project_id = config.project_id or None
    logger.info(
        "Creating context: project_id=%s, collection=%s, bucket=%s",
        project_id,
        config.collection,
        config.bucket_name,
    )

    db = firestore.Client(project=project_id)
    gcs = storage.Client(project=project_id)

    service = ProjectService(
        repository=FirestoreProjectRepository(db, collection=config.collection),
        storage=GCSBlobStorage(config.bucket_name, client=gcs),
        event_name_order=config.event_names,
    )
    live = LiveProjectList(
        service=service,
        feed=FirestoreChangeFeed(db, collection=config.collection),
    )
    return AppContext(
        config=config,
        service=service,
        live=live,
        preferences=JsonPreferenceStore(config.preferences_path),
    )
