import json
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

from .models import Base, WebhookLog


def _summarize_body(body: bytes) -> tuple[dict | None, str | None]:
    """Best-effort decode of a webhook body into (payload, event type)."""
    try:
        payload = json.loads(body)
    except ValueError:
        return None, None
    if not isinstance(payload, dict):
        return None, None
    event_type = payload.get("type") or payload.get("event_name")
    if payload.get("verification_token"):
        event_type = "verification"
    return payload, event_type


class Repository:
    def __init__(self, database_url: str) -> None:
        self._engine = create_async_engine(database_url, echo=False)
        self._session_factory = async_sessionmaker(self._engine, expire_on_commit=False)

    async def init_db(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self._engine.dispose()

    # -- WebhookLog --

    async def record_request(
        self,
        endpoint: str,
        body: bytes,
        user_agent: str | None = None,
        has_signature: bool = False,
    ) -> str:
        """Store an inbound request before it is handled. Returns its request id."""
        payload, event_type = _summarize_body(body)
        request_id = f"req_{uuid.uuid4().hex}"
        async with self._session_factory() as session:
            session.add(
                WebhookLog(
                    request_id=request_id,
                    endpoint=endpoint,
                    event_type=event_type,
                    user_agent=user_agent,
                    has_signature=has_signature,
                    payload=payload,
                )
            )
            await session.commit()
        return request_id

    async def finish_request(
        self,
        request_id: str,
        *,
        success: bool,
        duration_ms: int,
        entity_id: str | None = None,
        was_processed: bool = False,
        skip_reason: str | None = None,
        error: str | None = None,
    ) -> None:
        async with self._session_factory() as session:
            log = await session.get(WebhookLog, request_id)
            if log is None:
                return
            log.success = success
            log.duration_ms = duration_ms
            log.was_processed = was_processed
            log.skip_reason = skip_reason
            log.error = error
            if entity_id:
                log.entity_id = entity_id
            await session.commit()

    async def get_log(self, request_id: str) -> WebhookLog | None:
        async with self._session_factory() as session:
            return await session.get(WebhookLog, request_id)

    async def list_logs(
        self,
        *,
        limit: int | None = 50,
        failed_only: bool = False,
        event_type: str | None = None,
    ) -> list[WebhookLog]:
        """Most recent first."""
        stmt = select(WebhookLog).order_by(WebhookLog.received_at.desc())
        if failed_only:
            stmt = stmt.where(WebhookLog.success.is_(False))
        if event_type:
            stmt = stmt.where(WebhookLog.event_type == event_type)
        if limit is not None:
            stmt = stmt.limit(limit)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return list(result.scalars().all())

    async def count_logs(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(WebhookLog))
            return result.scalar_one()

    async def get_stats(self) -> dict:
        async with self._session_factory() as session:
            total = (
                await session.execute(select(func.count()).select_from(WebhookLog))
            ).scalar_one()
            successful = (
                await session.execute(
                    select(func.count()).select_from(WebhookLog).where(WebhookLog.success.is_(True))
                )
            ).scalar_one()
            by_event = await session.execute(
                select(WebhookLog.event_type, func.count()).group_by(WebhookLog.event_type)
            )
            by_agent = await session.execute(
                select(WebhookLog.user_agent, func.count()).group_by(WebhookLog.user_agent)
            )
            avg_duration = (
                await session.execute(
                    select(func.avg(WebhookLog.duration_ms)).where(WebhookLog.duration_ms > 0)
                )
            ).scalar_one()

        return {
            "total": total,
            "successful": successful,
            "failed": total - successful,
            "successRate": f"{successful / total * 100:.2f}%" if total else "0%",
            "eventTypes": {(name or "unknown"): count for name, count in by_event.all()},
            "userAgents": {(agent or "unknown"): count for agent, count in by_agent.all()},
            "averageProcessingTime": round(avg_duration or 0),
        }

    async def clear_older_than(self, hours: float) -> int:
        """Delete log entries older than ``hours``. Returns the number removed."""
        cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
        async with self._session_factory() as session:
            result = await session.execute(
                delete(WebhookLog).where(WebhookLog.received_at < cutoff)
            )
            await session.commit()
            return result.rowcount
