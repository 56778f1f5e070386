"""LiveProjectList - 変更通知で自動更新される案件一覧

起動時に一度全件を取得し、projects テーブルの変更通知を1本だけ購読する。
通知が来るたびにペイロードは見ずに全件を取り直す（差分マージはしない）。

取得は開始順に完了するとは限らないため、各取得に単調増加の番号を振り、
より新しい取得が既に反映済みなら古い結果は捨てる。
Firestore の通知は別スレッドで届くので、状態の読み書きはロックで保護する。
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable

from flyer_tracker.domain.errors import StoreError
from flyer_tracker.domain.models import FetchResult, Project
from flyer_tracker.domain.ports import ChangeFeed, Subscription
from flyer_tracker.services.project_service import ProjectService

logger = logging.getLogger(__name__)


class LiveProjectList:
    """
    アプリ全体で共有する唯一の案件一覧の状態。

    一覧を書き換えるのは取得完了時の refresh() だけ。
    初回または以後の取得が失敗すると error がセットされ、セッション中は解除されない
    （自動リトライはしない）。
    """

    def __init__(
        self, service: ProjectService | None, feed: ChangeFeed | None
    ) -> None:
        self._service = service
        self._feed = feed
        self._lock = threading.Lock()
        self._seq = itertools.count(1)
        self._applied_seq = 0
        self._projects: list[Project] = []
        self._error: str | None = None
        self._subscription: Subscription | None = None
        self._listeners: list[Callable[[], None]] = []

    @classmethod
    def unavailable(cls, error: str) -> LiveProjectList:
        """初期化（設定・認証）に失敗した場合の、エラー状態だけを持つ一覧"""
        live = cls(service=None, feed=None)
        live._error = error
        return live

    # ── ライフサイクル ────────────────────────────────────────────────────────

    def start(self) -> None:
        """初回取得を行い、変更通知の購読を開始する（二重購読はしない）"""
        if self._subscription is not None or self._feed is None:
            return
        self.refresh()
        try:
            self._subscription = self._feed.subscribe(self._on_change)
        except StoreError as e:
            logger.error("Failed to start live refresh: %s", e)
            self._set_error(f"変更通知の購読に失敗しました: {e}")
            return
        logger.info("Live refresh started")

    def stop(self) -> None:
        """購読を解除する。実行中の取得は中断しない"""
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            subscription.close()
            logger.info("Live refresh stopped")

    def add_listener(self, listener: Callable[[], None]) -> None:
        """取得結果が反映されるたびに呼ばれるコールバックを登録（エラー反映時も呼ぶ）"""
        self._listeners.append(listener)

    @property
    def running(self) -> bool:
        return self._subscription is not None

    # ── 取得 ─────────────────────────────────────────────────────────────────

    def _on_change(self) -> None:
        self.refresh()

    def refresh(self) -> bool:
        """
        全件を取り直して反映する。

        Returns:
            結果を反映した場合 True。より新しい取得が先に反映済みで破棄した場合 False
        """
        if self._service is None:
            return False
        with self._lock:
            seq = next(self._seq)

        try:
            result = self._service.list_projects()
        except Exception as e:
            # Watch スレッド上で例外を握りつぶさず、エラー状態として画面に出す
            logger.exception("Unexpected error while fetching projects")
            result = FetchResult(error=f"データの取得に失敗しました: {e}")

        with self._lock:
            if seq < self._applied_seq:
                logger.debug(
                    "Discarding stale fetch: seq=%d, applied=%d", seq, self._applied_seq
                )
                return False
            self._applied_seq = seq
            if result.error is not None:
                self._error = result.error
            else:
                self._projects = list(result.projects or [])

        self._notify()
        return True

    def _set_error(self, error: str) -> None:
        with self._lock:
            self._error = error
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()

    # ── 参照 ─────────────────────────────────────────────────────────────────

    @property
    def projects(self) -> list[Project]:
        with self._lock:
            return list(self._projects)

    @property
    def error(self) -> str | None:
        with self._lock:
            return self._error

    def find(self, project_id: str) -> Project | None:
        """現在の一覧から ID で検索。未反映の直後などは見つからないことがある"""
        for project in self.projects:
            if project.id == project_id:
                return project
        return None
