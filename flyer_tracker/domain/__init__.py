"""Domain layer - 外部依存なしのドメインモデルとインターフェース定義"""

from flyer_tracker.domain.errors import (
    BlobStoreError,
    ConfigLoadError,
    FlyerTrackerError,
    StoreError,
)
from flyer_tracker.domain.models import (
    Comment,
    FetchResult,
    NewProject,
    Project,
    ProjectFile,
    ProjectPatch,
    ProjectStatus,
    UserRole,
    phase_of,
    sort_projects,
)
from flyer_tracker.domain.ports import (
    BlobStorage,
    ChangeFeed,
    PreferenceStore,
    ProjectRepository,
    Subscription,
)

__all__ = [
    # Models
    "ProjectStatus",
    "UserRole",
    "Project",
    "ProjectFile",
    "Comment",
    "NewProject",
    "ProjectPatch",
    "FetchResult",
    "phase_of",
    "sort_projects",
    # Errors
    "FlyerTrackerError",
    "ConfigLoadError",
    "StoreError",
    "BlobStoreError",
    # Ports
    "ProjectRepository",
    "BlobStorage",
    "ChangeFeed",
    "Subscription",
    "PreferenceStore",
]
