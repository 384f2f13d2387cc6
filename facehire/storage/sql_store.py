"""
SQL-backed document store.

Interviews, session reports and the grading config live in three tables.
A completed session is written with a single transaction: the report row
and the interview status change commit together or not at all.
"""

import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ..application.models import Interview, InterviewStatus, SessionReport
from ..core.exceptions import InterviewNotFound, PersistenceError
from ..core.interfaces import DocumentStore
from ..core.logging import get_logger
from .tables import Base, ConfigRecord, InterviewRecord, SessionReportRecord

logger = get_logger(__name__)

GRADING_CONFIG_ID = "grading"


def _is_memory_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite") and (
        ":memory:" in database_url or database_url.rstrip("/").endswith(":")
    )


def _to_storage(value: datetime) -> datetime:
    """Store timestamps as naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def _from_storage(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    return value.replace(tzinfo=timezone.utc)


def _to_interview(record: InterviewRecord) -> Interview:
    return Interview(
        id=record.id,
        candidate_id=record.candidate_id,
        interviewer=record.interviewer,
        scheduled_at=_from_storage(record.scheduled_at),
        created_at=_from_storage(record.created_at),
        status=InterviewStatus(record.status),
        session_id=record.session_id,
    )


class SQLDocumentStore(DocumentStore):
    def __init__(self, database_url: str):
        engine_options: Dict[str, Any] = {"echo": False}
        if _is_memory_sqlite(database_url):
            # one shared connection, otherwise every connection gets its own empty database
            engine_options.update(poolclass=StaticPool, connect_args={"check_same_thread": False})
        self.engine = create_async_engine(database_url, **engine_options)
        self.session_factory = async_sessionmaker(self.engine, class_=AsyncSession, expire_on_commit=False)

    async def init(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def close(self) -> None:
        await self.engine.dispose()

    # Interviews

    async def create_interview(self,
                               candidate_id: str,
                               scheduled_at: datetime,
                               interviewer: str) -> Interview:
        record = InterviewRecord(
            id=str(uuid.uuid4()),
            candidate_id=candidate_id,
            interviewer=interviewer,
            scheduled_at=_to_storage(scheduled_at),
            status=InterviewStatus.UPCOMING.value,
            created_at=_to_storage(datetime.now(timezone.utc)),
        )
        async with self.session_factory() as session:
            async with session.begin():
                session.add(record)
        logger.info("interview_created", interview_id=record.id, candidate_id=candidate_id)
        return _to_interview(record)

    async def get_interview(self, interview_id: str) -> Interview:
        async with self.session_factory() as session:
            record = await session.get(InterviewRecord, interview_id)
        if record is None:
            raise InterviewNotFound(f"Interview {interview_id} not found",
                                    details={"interview_id": interview_id})
        return _to_interview(record)

    async def query_interviews(self,
                               candidate_id: str,
                               status: Optional[str] = None,
                               scheduled_before: Optional[datetime] = None,
                               scheduled_from: Optional[datetime] = None,
                               descending: bool = False) -> List[Interview]:
        query = select(InterviewRecord).where(InterviewRecord.candidate_id == candidate_id)
        if status is not None:
            query = query.where(InterviewRecord.status == status)
        if scheduled_before is not None:
            query = query.where(InterviewRecord.scheduled_at < _to_storage(scheduled_before))
        if scheduled_from is not None:
            query = query.where(InterviewRecord.scheduled_at >= _to_storage(scheduled_from))
        order = InterviewRecord.scheduled_at.desc() if descending else InterviewRecord.scheduled_at
        query = query.order_by(order)

        async with self.session_factory() as session:
            result = await session.execute(query)
            return [_to_interview(record) for record in result.scalars().all()]

    # Session reports

    async def complete_session(self, report: SessionReport) -> SessionReport:
        """
        Persist a finished session.

        Creates the report and moves its interview from upcoming to
        completed, with the new report id as the interview's session id.

        Raises:
            PersistenceError: either write failed; nothing was committed
        """
        report = replace(report, id=str(uuid.uuid4()))
        try:
            async with self.session_factory() as session:
                async with session.begin():
                    await self._insert_report(session, report)
                    await self._mark_interview_completed(session, report.interview_id, report.id)
        except PersistenceError:
            logger.error("session_persist_failed", interview_id=report.interview_id)
            raise
        except SQLAlchemyError as e:
            logger.error("session_persist_failed", interview_id=report.interview_id, error=str(e))
            raise PersistenceError(f"Failed to save interview session: {e}",
                                   details={"interview_id": report.interview_id}) from e

        logger.info("session_persisted", interview_id=report.interview_id, report_id=report.id)
        return report

    async def _insert_report(self, session: AsyncSession, report: SessionReport) -> None:
        session.add(SessionReportRecord(
            id=report.id,
            interview_id=report.interview_id,
            candidate_id=report.candidate_id,
            category=report.category,
            question_count=report.question_count,
            total_score_percent=report.total_score_percent,
            document=report.to_document(),
            completed_at=_to_storage(report.completed_at),
        ))
        await session.flush()

    async def _mark_interview_completed(self, session: AsyncSession, interview_id: str, report_id: str) -> None:
        result = await session.execute(
            update(InterviewRecord)
            .where(InterviewRecord.id == interview_id)
            .where(InterviewRecord.status == InterviewStatus.UPCOMING.value)
            .values(status=InterviewStatus.COMPLETED.value, session_id=report_id)
        )
        if result.rowcount != 1:
            raise PersistenceError(
                f"Interview {interview_id} is missing or no longer upcoming",
                details={"interview_id": interview_id},
            )

    async def get_report(self, report_id: str) -> Optional[Dict[str, Any]]:
        async with self.session_factory() as session:
            record = await session.get(SessionReportRecord, report_id)
        return dict(record.document) if record is not None else None

    async def list_reports(self, interview_id: str) -> List[Dict[str, Any]]:
        query = (select(SessionReportRecord)
                 .where(SessionReportRecord.interview_id == interview_id)
                 .order_by(SessionReportRecord.completed_at))
        async with self.session_factory() as session:
            result = await session.execute(query)
            return [dict(record.document) for record in result.scalars().all()]

    # Grading config

    async def load_grading_config(self) -> Optional[Dict[str, Any]]:
        async with self.session_factory() as session:
            record = await session.get(ConfigRecord, GRADING_CONFIG_ID)
        return dict(record.data) if record is not None else None

    async def save_grading_config(self, config: Dict[str, Any]) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.merge(ConfigRecord(id=GRADING_CONFIG_ID, data=dict(config)))
        logger.info("grading_config_saved", mode=config.get("mode"))
