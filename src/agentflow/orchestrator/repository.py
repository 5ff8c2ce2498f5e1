"""Durable task, run, log and artifact repository."""

from __future__ import annotations

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

from sqlalchemy import update as sa_update
from sqlmodel import Session, col, select

from agentflow.errors import TaskNotFoundError
from agentflow.orchestrator.models import (
    ArtifactView,
    ContentType,
    LogLevel,
    Plan,
    RunLogView,
    RunStatus,
    RunView,
    TaskDetails,
    TaskStatus,
    TaskView,
)
from agentflow.orchestrator.plan import plan_from_json, plan_to_json, validate_plan
from agentflow.storage.database import build_sqlite_engine, upgrade_head, utc_now
from agentflow.storage.sqlmodel_models import ArtifactRow, RunLogRow, RunRow, TaskRow


class OrchestratorRepository:
    """Persistence facade backed by SQLModel + SQLite.

    Every method opens its own session and commits one record change before
    returning, so status written by the executor is durable before the next
    scan pass reads it.
    """

    def __init__(self, db_path: Path, *, busy_timeout_ms: int = 5000) -> None:
        self.db_path = db_path
        self.engine = build_sqlite_engine(db_path=db_path, busy_timeout_ms=busy_timeout_ms)

    def close(self) -> None:
        """Close underlying DB resources."""

        self.engine.dispose()

    def init_schema(self) -> None:
        """Run schema migrations."""

        upgrade_head(self.db_path)

    # Tasks

    def create_task(self, plan: Plan, *, task_id: str | None = None) -> TaskView:
        """Persist a new pending task for a validated plan."""

        validate_plan(plan)
        now = utc_now()
        with Session(self.engine) as session:
            row = TaskRow(
                task_id=task_id or str(uuid4()),
                description=plan.description,
                status=TaskStatus.PENDING.value,
                plan_json=plan_to_json(plan),
                created_at=now,
                updated_at=now,
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_task_view(row)

    def get_task(self, *, task_id: str) -> TaskView | None:
        with Session(self.engine) as session:
            row = session.get(TaskRow, task_id)
            return _to_task_view(row) if row is not None else None

    def require_task(self, *, task_id: str) -> TaskView:
        task = self.get_task(task_id=task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        return task

    def update_task_status(self, *, task_id: str, status: TaskStatus) -> None:
        now = utc_now()
        with Session(self.engine) as session:
            result = session.exec(
                sa_update(TaskRow)
                .where(col(TaskRow.task_id) == task_id)
                .values(status=status.value, updated_at=_to_db_datetime(now)),
            )
            if result.rowcount != 1:
                session.rollback()
                raise TaskNotFoundError(task_id)
            session.commit()

    def list_tasks(self, *, status: TaskStatus | None = None, limit: int = 50) -> list[TaskView]:
        with Session(self.engine) as session:
            statement = select(TaskRow)
            if status is not None:
                statement = statement.where(TaskRow.status == status.value)
            rows = session.exec(
                statement.order_by(col(TaskRow.created_at).desc()).limit(limit),
            ).all()
            return [_to_task_view(row) for row in rows]

    def get_task_details(self, *, task_id: str) -> TaskDetails | None:
        task = self.get_task(task_id=task_id)
        if task is None:
            return None
        return TaskDetails(task=task, runs=self.list_runs(task_id=task_id))

    # Runs

    def create_runs(self, *, task_id: str, plan: Plan) -> dict[str, RunView]:
        """Create one pending run per plan node, resetting rows left by an earlier execution."""

        now = utc_now()
        with Session(self.engine) as session:
            existing = {
                row.node_id: row
                for row in session.exec(select(RunRow).where(RunRow.task_id == task_id)).all()
            }
            rows: list[RunRow] = []
            for position, node in enumerate(plan.nodes):
                row = existing.get(node.id)
                if row is None:
                    row = RunRow(
                        run_id=str(uuid4()),
                        task_id=task_id,
                        node_id=node.id,
                        position=position,
                        agent_name=node.agent,
                        status=RunStatus.PENDING.value,
                        attempts=0,
                        started_at=now,
                    )
                else:
                    row.position = position
                    row.agent_name = node.agent
                    row.status = RunStatus.PENDING.value
                    row.error = None
                    row.attempts = 0
                    row.started_at = _to_db_datetime(now)
                    row.ended_at = None
                session.add(row)
                rows.append(row)
            session.commit()
            for row in rows:
                session.refresh(row)
            return {row.node_id: _to_run_view(row) for row in rows}

    def mark_run_running(self, *, run_id: str, attempts: int) -> None:
        now = utc_now()
        self._update_run(
            run_id,
            status=RunStatus.RUNNING.value,
            attempts=attempts,
            started_at=_to_db_datetime(now),
            ended_at=None,
        )

    def update_run(
        self,
        *,
        run_id: str,
        status: RunStatus,
        error: str | None = None,
        attempts: int | None = None,
    ) -> None:
        """Record a terminal or intermediate run outcome; ``attempts=None`` keeps the count."""

        values: dict[str, Any] = {
            "status": status.value,
            "error": error,
            "ended_at": _to_db_datetime(utc_now()),
        }
        if attempts is not None:
            values["attempts"] = attempts
        self._update_run(run_id, **values)

    def record_run_error(self, *, run_id: str, error: str, attempts: int) -> None:
        """Store the latest attempt error without changing run status."""

        self._update_run(run_id, error=error, attempts=attempts)

    def get_run(self, *, run_id: str) -> RunView | None:
        with Session(self.engine) as session:
            row = session.get(RunRow, run_id)
            return _to_run_view(row) if row is not None else None

    def list_runs(self, *, task_id: str) -> list[RunView]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(RunRow)
                .where(RunRow.task_id == task_id)
                .order_by(col(RunRow.position).asc()),
            ).all()
            return [_to_run_view(row) for row in rows]

    def _update_run(self, run_id: str, **values: Any) -> None:
        with Session(self.engine) as session:
            result = session.exec(
                sa_update(RunRow).where(col(RunRow.run_id) == run_id).values(**values),
            )
            if result.rowcount != 1:
                session.rollback()
                raise LookupError(f"Run {run_id} not found")
            session.commit()

    # Logs

    def add_log(
        self,
        *,
        run_id: str,
        level: LogLevel,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        with Session(self.engine) as session:
            session.add(
                RunLogRow(
                    run_id=run_id,
                    level=level.value,
                    message=message,
                    details_json=json.dumps(details, ensure_ascii=False, sort_keys=True, default=str)
                    if details
                    else None,
                    created_at=utc_now(),
                ),
            )
            session.commit()

    def list_logs(self, *, run_id: str) -> list[RunLogView]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(RunLogRow)
                .where(RunLogRow.run_id == run_id)
                .order_by(col(RunLogRow.created_at).asc(), col(RunLogRow.id).asc()),
            ).all()
            return [_to_log_view(row) for row in rows]

    def list_task_logs(self, *, task_id: str) -> list[RunLogView]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(RunLogRow)
                .join(RunRow, col(RunRow.run_id) == col(RunLogRow.run_id))
                .where(RunRow.task_id == task_id)
                .order_by(col(RunLogRow.created_at).asc(), col(RunLogRow.id).asc()),
            ).all()
            return [_to_log_view(row) for row in rows]

    # Artifacts

    def add_artifact(
        self,
        *,
        run_id: str,
        content_type: ContentType,
        path: str,
        size_bytes: int,
        metadata: dict[str, Any] | None = None,
    ) -> ArtifactView:
        with Session(self.engine) as session:
            row = ArtifactRow(
                artifact_id=str(uuid4()),
                run_id=run_id,
                content_type=content_type.value,
                path=path,
                size_bytes=size_bytes,
                metadata_json=json.dumps(metadata or {}, ensure_ascii=False, sort_keys=True, default=str),
                created_at=utc_now(),
            )
            session.add(row)
            session.commit()
            session.refresh(row)
            return _to_artifact_view(row)

    def list_artifacts(self, *, run_id: str) -> list[ArtifactView]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(ArtifactRow)
                .where(ArtifactRow.run_id == run_id)
                .order_by(col(ArtifactRow.created_at).asc()),
            ).all()
            return [_to_artifact_view(row) for row in rows]

    def list_task_artifacts(self, *, task_id: str) -> list[ArtifactView]:
        with Session(self.engine) as session:
            rows = session.exec(
                select(ArtifactRow)
                .join(RunRow, col(RunRow.run_id) == col(ArtifactRow.run_id))
                .where(RunRow.task_id == task_id)
                .order_by(col(RunRow.position).asc(), col(ArtifactRow.created_at).asc()),
            ).all()
            return [_to_artifact_view(row) for row in rows]


def _to_db_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _to_utc_aware_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _to_task_view(row: TaskRow) -> TaskView:
    return TaskView(
        task_id=row.task_id,
        plan=plan_from_json(row.plan_json),
        status=TaskStatus(row.status),
        created_at=_to_utc_aware_datetime(row.created_at),
        updated_at=_to_utc_aware_datetime(row.updated_at),
    )


def _to_run_view(row: RunRow) -> RunView:
    return RunView(
        run_id=row.run_id,
        task_id=row.task_id,
        node_id=row.node_id,
        agent_name=row.agent_name,
        status=RunStatus(row.status),
        error=row.error,
        attempts=row.attempts,
        started_at=_to_utc_aware_datetime(row.started_at),
        ended_at=_to_utc_aware_datetime(row.ended_at) if row.ended_at is not None else None,
    )


def _to_log_view(row: RunLogRow) -> RunLogView:
    return RunLogView(
        log_id=row.id or 0,
        run_id=row.run_id,
        level=LogLevel(row.level),
        message=row.message,
        created_at=_to_utc_aware_datetime(row.created_at),
        details=json.loads(row.details_json) if row.details_json else {},
    )


def _to_artifact_view(row: ArtifactRow) -> ArtifactView:
    return ArtifactView(
        artifact_id=row.artifact_id,
        run_id=row.run_id,
        content_type=ContentType(row.content_type),
        path=row.path,
        size_bytes=row.size_bytes,
        created_at=_to_utc_aware_datetime(row.created_at),
        metadata=json.loads(row.metadata_json) if row.metadata_json else {},
    )
