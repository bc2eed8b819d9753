"""Integration consolidation model and the theme tree it stores."""

from datetime import date, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, UniqueConstraint
from sqlmodel import Column, Field, SQLModel


class Attribution(str, Enum):
    """Who an evidence statement is credited to."""

    USER = "USER"
    TEAM = "TEAM"
    OTHER = "OTHER"
    UNSPECIFIED = "UNSPECIFIED"


class ProcessingStatus(str, Enum):
    """Outcome marker for a stored consolidation."""

    COMPLETED = "completed"


class Evidence(SQLModel):
    """One self-contained statement of the user's contribution."""

    statement: str
    attribution: Attribution = Attribution.UNSPECIFIED


class Category(SQLModel):
    """A performance category grouping evidence within a theme."""

    name: str
    evidence: list[Evidence] = Field(default_factory=list)


class Theme(SQLModel):
    """A project, initiative or recurring topic of the week."""

    name: str
    categories: list[Category] = Field(default_factory=list)

    @property
    def evidence_count(self) -> int:
        return sum(len(category.evidence) for category in self.categories)


class IntegrationConsolidation(SQLModel, table=True):
    """Structured distillation of one user's week of one integration's data."""

    __tablename__ = "integration_consolidations"
    __table_args__ = (
        UniqueConstraint(
            "user_id",
            "integration_type",
            "week_number",
            "year",
            name="uq_integration_consolidations_week",
        ),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: UUID = Field(index=True)
    integration_type: str = Field(index=True)

    week_number: int = Field(ge=1, le=53)
    year: int
    week_start: date
    week_end: date

    consolidated_summary: str = Field(default="")
    key_insights: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    metrics: dict[str, Any] = Field(default_factory=dict, sa_column=Column(JSON))
    themes: list[dict[str, Any]] = Field(default_factory=list, sa_column=Column(JSON))

    raw_data: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))
    consolidation_prompt: str | None = Field(default=None)
    llm_model: str | None = Field(default=None)
    processing_status: ProcessingStatus = Field(default=ProcessingStatus.COMPLETED)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    consolidated_at: datetime = Field(default_factory=datetime.utcnow)

    def theme_tree(self) -> list[Theme]:
        """Rebuild the typed theme tree from its JSON column."""
        return [Theme.model_validate(theme) for theme in self.themes or []]

    def to_dict(self) -> dict[str, Any]:
        """Convert consolidation to dictionary for API responses."""
        return {
            "id": str(self.id),
            "integration_type": self.integration_type,
            "week_number": self.week_number,
            "year": self.year,
            "week_start": self.week_start.isoformat(),
            "week_end": self.week_end.isoformat(),
            "summary": self.consolidated_summary,
            "key_insights": self.key_insights,
            "metrics": self.metrics,
            "themes": self.themes,
            "processing_status": self.processing_status.value,
            "llm_model": self.llm_model,
            "consolidated_at": self.consolidated_at.isoformat(),
        }
