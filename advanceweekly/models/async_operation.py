"""Async operation model for tracking long-running generation work."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, Index, text
from sqlmodel import Column, Field, SQLModel

from advanceweekly.errors import InvalidTransitionError


class OperationType(str, Enum):
    """Operation types understood by the job dispatcher."""

    WEEKLY_REFLECTION = "weekly_reflection_generation"


class AsyncOperationStatus(str, Enum):
    """States for async operations."""

    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class TriggerType(str, Enum):
    """Where an operation came from."""

    MANUAL = "manual"
    SCHEDULED = "scheduled"
    TEST = "test"


ACTIVE_STATUSES = (AsyncOperationStatus.QUEUED, AsyncOperationStatus.PROCESSING)
TERMINAL_STATUSES = (AsyncOperationStatus.COMPLETED, AsyncOperationStatus.FAILED)

ALLOWED_TRANSITIONS: dict[AsyncOperationStatus, tuple[AsyncOperationStatus, ...]] = {
    AsyncOperationStatus.QUEUED: (AsyncOperationStatus.PROCESSING,),
    AsyncOperationStatus.PROCESSING: TERMINAL_STATUSES,
    AsyncOperationStatus.COMPLETED: (),
    AsyncOperationStatus.FAILED: (),
}

# Enum columns persist member names, hence the upper-case literals.
_ACTIVE_WHERE = text("status IN ('QUEUED', 'PROCESSING')")


class AsyncOperation(SQLModel, table=True):
    """Durable record of one unit of trackable work."""

    __tablename__ = "async_operations"
    __table_args__ = (
        # At most one queued/processing operation per user, type and week.
        Index(
            "uq_async_operations_active_week",
            "user_id",
            "operation_type",
            "week_key",
            unique=True,
            postgresql_where=_ACTIVE_WHERE,
            sqlite_where=_ACTIVE_WHERE,
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)

    operation_type: str = Field(index=True)
    status: AsyncOperationStatus = Field(default=AsyncOperationStatus.QUEUED, index=True)
    week_key: str | None = Field(default=None)
    progress: int = Field(default=0, ge=0, le=100)

    input_data: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    result_data: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    error_message: str | None = Field(default=None)
    operation_metadata: dict[str, Any] = Field(
        default_factory=dict, sa_column=Column("metadata", JSON)
    )
    estimated_duration: int | None = Field(default=None)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: datetime | None = Field(default=None)
    completed_at: datetime | None = Field(default=None)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def can_transition_to(self, status: AsyncOperationStatus) -> bool:
        return status in ALLOWED_TRANSITIONS[self.status]

    def transition_to(self, status: AsyncOperationStatus) -> None:
        """Move to ``status``, stamping start/completion times.

        Raises:
            InvalidTransitionError: If the state machine forbids the move.
        """
        if not self.can_transition_to(status):
            raise InvalidTransitionError(
                f"Operation {self.id} cannot move from {self.status.value} to {status.value}"
            )
        now = datetime.utcnow()
        self.status = status
        self.updated_at = now
        if status == AsyncOperationStatus.PROCESSING:
            self.started_at = now
        elif status in TERMINAL_STATUSES:
            self.completed_at = now

    def time_remaining(self) -> int | None:
        """Estimated seconds left while processing, if a duration estimate exists."""
        if self.status != AsyncOperationStatus.PROCESSING:
            return None
        if not self.started_at or not self.estimated_duration:
            return None
        elapsed = int((datetime.utcnow() - self.started_at).total_seconds())
        return max(0, self.estimated_duration - elapsed)

    def to_dict(self) -> dict[str, Any]:
        """Convert operation to dictionary for API responses."""
        return {
            "operation_id": str(self.id),
            "user_id": str(self.user_id),
            "operation_type": self.operation_type,
            "status": self.status.value,
            "week_key": self.week_key,
            "progress": self.progress,
            "input_data": self.input_data,
            "result_data": self.result_data,
            "error_message": self.error_message,
            "metadata": self.operation_metadata,
            "estimated_duration": self.estimated_duration,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "is_complete": self.is_terminal,
        }
