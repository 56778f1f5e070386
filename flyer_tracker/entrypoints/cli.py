#!/usr/bin/env python3
"""CLI Entrypoint - コマンドラインから実行

使い方:
    python -m flyer_tracker.entrypoints.cli list
    python -m flyer_tracker.entrypoints.cli export -o projects.csv
    python -m flyer_tracker.entrypoints.cli comment <project_id> "校正確認しました" --role agency
    python -m flyer_tracker.entrypoints.cli prefs --name 山田 --role company --font-size lg
    python -m flyer_tracker.entrypoints.cli view "#/project/<project_id>"
    python -m flyer_tracker.entrypoints.cli new 夏まつり 2025-08-01 --print-count 500 --urgent
    python -m flyer_tracker.entrypoints.cli watch

環境変数:
    GCS_BUCKET_NAME: 添付ファイル用バケット（必須）
    LOG_LEVEL: ログレベル (DEBUG, INFO, WARNING, ERROR) デフォルト: INFO
"""

import argparse
import json
import logging
import sys
import threading

from flyer_tracker.adapters.csv_renderer import ProjectCsvRenderer
from flyer_tracker.adapters.local_preferences import (
    FONT_SIZE_KEY,
    USER_NAME_KEY,
    USER_ROLE_KEY,
    JsonPreferenceStore,
)
from flyer_tracker.domain.models import (
    FONT_SIZES,
    NewProject,
    Project,
    ProjectStatus,
    UserRole,
)
from flyer_tracker.entrypoints.factory import AppContext, create_context
from flyer_tracker.logging_config import setup_logging
from flyer_tracker.views.controller import FormValidationError, ViewController

logger = logging.getLogger(__name__)


def _format_row(p: Project) -> str:
    urgent = "!" if p.is_urgent else " "
    return f"{urgent} [{p.phase}/7] {p.event_date}  {p.event_name}  ({p.status.value})  id={p.id}"


def _print_projects(projects: list[Project]) -> None:
    if not projects:
        print("案件がありません。")
        return
    for p in projects:
        print(_format_row(p))


def cmd_list(ctx: AppContext, args: argparse.Namespace) -> int:
    result = ctx.service.list_projects()
    if result.error:
        logger.error(result.error)
        return 1
    _print_projects(result.projects or [])
    return 0


def cmd_export(ctx: AppContext, args: argparse.Namespace) -> int:
    result = ctx.service.list_projects()
    if result.error:
        logger.error(result.error)
        return 1
    if not result.projects:
        logger.warning("出力する案件がありません。")
        return 1

    content = ProjectCsvRenderer().render(result.projects)
    if args.output:
        with open(args.output, "w", encoding="utf-8", newline="") as f:
            f.write(content)
        logger.info("Exported %d project(s) to %s", len(result.projects), args.output)
    else:
        sys.stdout.write(content)
    return 0


def _stored_role(prefs: JsonPreferenceStore) -> UserRole | None:
    """保存済みのロール。手で書き換えられた不正な値は未設定として扱う"""
    value = prefs.get(USER_ROLE_KEY)
    if value is None:
        return None
    try:
        return UserRole(value)
    except ValueError:
        logger.warning("Ignoring invalid stored role: %r", value)
        return None


def cmd_comment(ctx: AppContext, args: argparse.Namespace) -> int:
    prefs = ctx.preferences
    name = (args.name or prefs.get(USER_NAME_KEY) or "").strip()
    role = UserRole(args.role) if args.role else _stored_role(prefs)
    if not name or role is None:
        logger.error("表示名とロールを指定してください（--name / --role）")
        return 2

    text = args.text.strip()
    if not text:
        logger.error("コメントが空です")
        return 2

    ok = ctx.service.add_comment(args.project_id, text, name, role)
    # 次回以降の入力を省略できるよう記憶する
    prefs.set(USER_NAME_KEY, name)
    prefs.set(USER_ROLE_KEY, role.value)
    return 0 if ok else 1


def cmd_prefs(ctx: AppContext, args: argparse.Namespace) -> int:
    prefs = ctx.preferences
    if args.name:
        prefs.set(USER_NAME_KEY, args.name.strip())
    if args.role:
        prefs.set(USER_ROLE_KEY, args.role)
    if args.font_size:
        prefs.set(FONT_SIZE_KEY, args.font_size)

    print(f"name={prefs.get(USER_NAME_KEY) or ''}")
    print(f"role={prefs.get(USER_ROLE_KEY) or ''}")
    print(f"font_size={prefs.get(FONT_SIZE_KEY) or 'base'}")
    return 0


def cmd_view(ctx: AppContext, args: argparse.Namespace) -> int:
    """フラグメントに対応する画面のビューモデルを JSON で表示"""
    prefs = ctx.preferences
    controller = ViewController(ctx.live, ctx.service, ctx.config.event_names)
    ctx.live.refresh()
    controller.navigate(args.fragment)

    role = UserRole(args.role) if args.role else _stored_role(prefs)
    font_size = args.font_size or prefs.get(FONT_SIZE_KEY)
    view = controller.render(
        viewer_role=role,
        font_size=font_size if font_size in FONT_SIZES else "base",
        selected_status=ProjectStatus(args.status) if args.status else None,
    )
    print(json.dumps(view.model_dump(mode="json"), ensure_ascii=False, indent=2))
    return 1 if ctx.live.error else 0


def cmd_new(ctx: AppContext, args: argparse.Namespace) -> int:
    """新規登録フォームから案件を登録する（ステータスは「未定」）"""
    controller = ViewController(ctx.live, ctx.service, ctx.config.event_names)
    controller.navigate("#/new")
    data = NewProject(
        event_name=args.event_name,
        event_date=args.event_date,
        event_time=args.time or "",
        event_location=args.location or "",
        print_count=args.print_count,
        delivery_hope_date=args.delivery or "",
        number_of_recruits=args.recruits,
        notes=args.notes or "",
        is_urgent=args.urgent,
        flyer_not_needed=args.flyer_not_needed,
    )
    try:
        project_id = controller.submit_new_project(data)
    except FormValidationError as e:
        logger.error("%s", e)
        return 2
    if project_id is None:
        return 1

    print(f"登録しました: id={project_id}")
    _print_projects(ctx.live.projects)
    return 0


def cmd_watch(ctx: AppContext, args: argparse.Namespace) -> int:
    live = ctx.live
    failed = threading.Event()

    def _redraw() -> None:
        if live.error:
            logger.error(live.error)
            failed.set()
            return
        print("─" * 60)
        _print_projects(live.projects)

    live.add_listener(_redraw)
    live.start()
    try:
        # 変更通知は Firestore のスレッドで届く。エラー状態になるまで待つ
        failed.wait()
    finally:
        live.stop()
    return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="flyer-tracker", description="チラシ進捗管理 CLI"
    )
    parser.add_argument("--log-level", default=None, help="DEBUG/INFO/WARNING/ERROR")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("list", help="案件一覧を表示")
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("export", help="案件一覧を CSV で出力")
    p.add_argument("-o", "--output", help="出力ファイル（省略時は標準出力）")
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("comment", help="コメントを追記")
    p.add_argument("project_id")
    p.add_argument("text")
    p.add_argument("--name", help="表示名（省略時は前回の値）")
    p.add_argument("--role", choices=[r.value for r in UserRole])
    p.set_defaults(func=cmd_comment)

    p = sub.add_parser("prefs", help="表示名・ロール・文字サイズの確認と変更")
    p.add_argument("--name")
    p.add_argument("--role", choices=[r.value for r in UserRole])
    p.add_argument("--font-size", choices=FONT_SIZES)
    p.set_defaults(func=cmd_prefs)

    p = sub.add_parser("view", help="画面のビューモデルを JSON で表示")
    p.add_argument("fragment", nargs="?", default="", help='例: "#/project/<id>"')
    p.add_argument("--role", choices=[r.value for r in UserRole])
    p.add_argument("--font-size", choices=FONT_SIZES)
    p.add_argument(
        "--status",
        choices=[s.value for s in ProjectStatus],
        help="詳細画面で選択中のステータス",
    )
    p.set_defaults(func=cmd_view)

    p = sub.add_parser("new", help="新規案件を登録")
    p.add_argument("event_name")
    p.add_argument("event_date", help="YYYY-MM-DD")
    p.add_argument("--time")
    p.add_argument("--location")
    p.add_argument("--print-count", type=int)
    p.add_argument("--delivery", help="納品希望日 YYYY-MM-DD")
    p.add_argument("--recruits", type=int, help="募集人数")
    p.add_argument("--notes")
    p.add_argument("--urgent", action="store_true")
    p.add_argument("--flyer-not-needed", action="store_true")
    p.set_defaults(func=cmd_new)

    p = sub.add_parser("watch", help="変更のたびに一覧を再表示")
    p.set_defaults(func=cmd_watch)

    return parser


def main(argv: list[str] | None = None) -> None:
    """メインエントリーポイント"""
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        ctx = create_context()
        sys.exit(args.func(ctx, args))

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception:
        logger.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    main()
