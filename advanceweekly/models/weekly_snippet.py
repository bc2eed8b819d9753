"""Weekly snippet (reflection) model."""

from datetime import date, datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, UniqueConstraint
from sqlmodel import Column, Field, SQLModel

REQUIRED_SECTIONS = ("## Done", "## Next", "## Notes")


class WeeklySnippet(SQLModel, table=True):
    """The user-facing reflection for one week."""

    __tablename__ = "weekly_snippets"
    __table_args__ = (
        UniqueConstraint("user_id", "year", "week_number", name="uq_weekly_snippets_week"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)

    week_number: int = Field(ge=1, le=53)
    year: int
    start_date: date
    end_date: date

    content: str
    ai_suggestions: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def generated_automatically(self) -> bool:
        return bool((self.ai_suggestions or {}).get("generated_automatically"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "week_number": self.week_number,
            "year": self.year,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
            "content": self.content,
            "ai_suggestions": self.ai_suggestions,
            "created_at": self.created_at.isoformat(),
        }
