"""Services layer - データアクセスと一覧の自動更新"""

from flyer_tracker.services.live_projects import LiveProjectList
from flyer_tracker.services.project_service import ProjectService

__all__ = [
    "ProjectService",
    "LiveProjectList",
]
