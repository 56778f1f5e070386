"""CSV Renderer Adapter

案件一覧を CSV（1行1案件）に書き出す。
files / comments はセル内に JSON 文字列として埋め込む。

出力例:
  id,eventName,eventDate,...,files,comments,numberOfRecruits,flyerNotNeeded
  abc123,夏まつり,2025-08-01,...,"[{""name"": ""a.pdf"", ...}]",[],,false
"""

from __future__ import annotations

import csv
import io
import json
from collections.abc import Iterable

from flyer_tracker.adapters.firestore_repository import comment_to_dict, file_to_dict
from flyer_tracker.domain.models import Project

# Excel で文字化けしないよう UTF-8 BOM を先頭に付ける
_BOM = "\ufeff"

HEADERS = (
    "id",
    "eventName",
    "eventDate",
    "eventTime",
    "eventLocation",
    "printCount",
    "deliveryHopeDate",
    "notes",
    "status",
    "createdAt",
    "isUrgent",
    "files",
    "comments",
    "numberOfRecruits",
    "flyerNotNeeded",
)


def _cell(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


class ProjectCsvRenderer:
    """案件一覧 → CSV 文字列"""

    def render(self, projects: Iterable[Project]) -> str:
        buf = io.StringIO()
        # 区切り文字・引用符・改行を含む値だけを引用符で囲む
        writer = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
        writer.writerow(HEADERS)
        for p in projects:
            writer.writerow(
                [
                    p.id,
                    p.event_name,
                    p.event_date,
                    p.event_time,
                    p.event_location,
                    _cell(p.print_count),
                    p.delivery_hope_date,
                    p.notes,
                    p.status.value,
                    p.created_at[:10],  # YYYY-MM-DD
                    _cell(p.is_urgent),
                    json.dumps([file_to_dict(f) for f in p.files], ensure_ascii=False),
                    json.dumps(
                        [comment_to_dict(c) for c in p.comments], ensure_ascii=False
                    ),
                    _cell(p.number_of_recruits),
                    _cell(p.flyer_not_needed),
                ]
            )
        return _BOM + buf.getvalue()

