"""Inspection endpoint for the webhook request log."""

import csv
import io
import json
import logging

from fastapi import APIRouter, Body, Query
from fastapi.responses import Response

from notion_todoist_bridge.db.repository import Repository
from notion_todoist_bridge.errors import ValidationError

logger = logging.getLogger(__name__)

router = APIRouter()

PAGE_SIZE = 50
DEFAULT_CLEAR_HOURS = 0.1

CSV_COLUMNS = [
    "receivedAt", "requestId", "endpoint", "eventType", "entityId",
    "success", "duration", "userAgent", "error",
]

_repo: Repository | None = None


def configure(repo: Repository) -> None:
    global _repo
    _repo = repo


def logs_to_csv(logs: list[dict]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for log in logs:
        processing = log["processing"]
        writer.writerow([
            log["receivedAt"],
            log["requestId"],
            log["endpoint"],
            log["eventType"] or "",
            log["entityId"] or "",
            processing["success"],
            processing["duration"],
            log["userAgent"] or "",
            processing["error"] or "",
        ])
    return buffer.getvalue()


@router.get("/api/webhook-logs")
async def get_logs(
    action: str = Query("logs"),
    format: str = Query("json"),
    event_type: str | None = Query(None, alias="eventType"),
):
    if action == "logs":
        logs = await _repo.list_logs(limit=PAGE_SIZE, event_type=event_type)
        total = await _repo.count_logs()
        return {
            "logs": [log.to_dict() for log in logs],
            "total": total,
            "hasMore": total > PAGE_SIZE,
        }

    if action == "stats":
        return {"stats": await _repo.get_stats()}

    if action == "failed":
        logs = await _repo.list_logs(limit=None, failed_only=True)
        return {"logs": [log.to_dict() for log in logs]}

    if action == "export":
        logs = [log.to_dict() for log in await _repo.list_logs(limit=None)]
        if format == "csv":
            content, media_type = logs_to_csv(logs), "text/csv"
        else:
            content, media_type = json.dumps(logs, indent=2), "application/json"
        return Response(
            content=content,
            media_type=media_type,
            headers={"Content-Disposition": f'attachment; filename="webhook-logs.{format}"'},
        )

    raise ValidationError("Invalid action. Use: logs, stats, failed, export")


@router.post("/api/webhook-logs")
async def manage_logs(body: dict = Body(...)):
    action = body.get("action")
    if action != "clear-logs":
        raise ValidationError("Invalid action. Use: clear-logs")

    hours = body.get("hours") or DEFAULT_CLEAR_HOURS
    try:
        hours = float(hours)
    except (TypeError, ValueError) as exc:
        raise ValidationError("hours must be a number") from exc

    removed = await _repo.clear_older_than(hours)
    logger.info("Removed %d webhook log entries older than %sh", removed, hours)
    return {
        "message": f"{removed} log entries removed (older than {hours}h)",
        "removedCount": removed,
        "hoursUsed": hours,
    }
