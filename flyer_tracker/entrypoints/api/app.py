"""FastAPI アプリケーション

チラシ進捗管理のバックエンド API。
Cloud Run Service として動作し、Firestore / Cloud Storage をバックエンドに使う。

エンドポイント一覧:
  GET    /api/projects
  POST   /api/projects
  GET    /api/projects/export.csv
  GET    /api/projects/{id}
  PATCH  /api/projects/{id}
  PUT    /api/projects/{id}/status
  DELETE /api/projects/{id}
  POST   /api/projects/{id}/files
  DELETE /api/projects/{id}/files/{name}
  POST   /api/projects/{id}/comments
  GET    /api/view?fragment=...
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.responses import Response

from flyer_tracker.entrypoints.api import deps
from flyer_tracker.entrypoints.api.routes import projects, views
from flyer_tracker.logging_config import setup_logging

# ── ロギング初期化 ───────────────────────────────────────────────────────────
setup_logging()
logger = logging.getLogger(__name__)

# ── FastAPI アプリ ───────────────────────────────────────────────────────────
app = FastAPI(
    title="Flyer Tracker API",
    description="チラシ制作依頼の進捗管理 API",
    version="1.0.0",
)

# ── グローバル例外ミドルウェア ──────────────────────────────────────────────────
# CORSMiddleware より先に登録して内側に置き、500 レスポンスにも CORS ヘッダーを付ける。


@app.middleware("http")
async def _catch_unhandled_exceptions(
    request: Request, call_next: Callable[[Request], Response]
) -> Response:
    try:
        return await call_next(request)
    except Exception as exc:
        logger.error(
            "Unhandled exception: %s %s - %s",
            request.method,
            request.url.path,
            exc,
            exc_info=True,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )


# ── CORS（フロントエンドからのリクエストを許可） ──────────────────────────────
_extra_origins = [
    o.strip() for o in os.environ.get("CORS_ORIGINS", "").split(",") if o.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_extra_origins if _extra_origins else ["http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)

# ── ルーター登録 ─────────────────────────────────────────────────────────────
_PREFIX = "/api"

app.include_router(projects.router, prefix=_PREFIX)
app.include_router(views.router, prefix=_PREFIX)


@app.on_event("startup")
async def _on_startup() -> None:
    """初回の一覧取得と変更通知の購読を開始する"""
    deps.get_live_projects().start()


@app.on_event("shutdown")
async def _on_shutdown() -> None:
    """変更通知の購読を解除する"""
    deps.get_live_projects().stop()


@app.get("/health")
async def health() -> dict:
    """ヘルスチェックエンドポイント（Cloud Run の起動確認用）"""
    return {"status": "ok"}


logger.info("Flyer Tracker API started")
