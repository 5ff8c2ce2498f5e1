"""SQLModel ORM tables for orchestrator storage."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text, UniqueConstraint
from sqlmodel import Field, SQLModel


class TaskRow(SQLModel, table=True):
    __tablename__ = "tasks"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_tasks_status_created", "status", "created_at"),)

    task_id: str = Field(primary_key=True)
    description: str = Field(default="")
    status: str = Field(index=True)
    plan_json: str = Field(sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class RunRow(SQLModel, table=True):
    __tablename__ = "runs"  # type: ignore[bad-override]
    __table_args__ = (
        UniqueConstraint("task_id", "node_id", name="uq_runs_task_node"),
        Index("idx_runs_task_position", "task_id", "position"),
    )

    run_id: str = Field(primary_key=True)
    task_id: str = Field(
        sa_column=Column(
            ForeignKey("tasks.task_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    node_id: str
    position: int = Field(default=0)
    agent_name: str = Field(index=True)
    status: str = Field(index=True)
    error: str | None = Field(default=None, sa_column=Column(Text))
    attempts: int = Field(default=0)
    started_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
    ended_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True)))


class RunLogRow(SQLModel, table=True):
    __tablename__ = "run_logs"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_run_logs_run_time", "run_id", "created_at"),)

    id: int | None = Field(default=None, primary_key=True)
    run_id: str = Field(
        sa_column=Column(
            ForeignKey("runs.run_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    level: str = Field(index=True)
    message: str = Field(sa_column=Column(Text, nullable=False))
    details_json: str | None = Field(default=None, sa_column=Column(Text))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))


class ArtifactRow(SQLModel, table=True):
    __tablename__ = "artifacts"  # type: ignore[bad-override]
    __table_args__ = (Index("idx_artifacts_run_type", "run_id", "content_type"),)

    artifact_id: str = Field(primary_key=True)
    run_id: str = Field(
        sa_column=Column(
            ForeignKey("runs.run_id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
    )
    content_type: str
    path: str
    size_bytes: int = Field(default=0)
    metadata_json: str = Field(default="{}", sa_column=Column(Text, nullable=False))
    created_at: datetime = Field(sa_column=Column(DateTime(timezone=True), nullable=False))
