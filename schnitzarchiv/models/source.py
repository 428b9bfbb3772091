"""Curated source (article) model."""

from datetime import datetime
from enum import Enum

from pydantic import computed_field
from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class SourceCategory(str, Enum):
    """Editorial type of a source.

    The values are shown to visitors as-is, so they stay German.
    """

    Tutorial = "Tutorial"
    Werkzeug = "Werkzeug"
    Material = "Material"
    Technik = "Technik"
    Inspiration = "Inspiration"
    Community = "Community"
    Geschichte = "Geschichte"
    Sonstiges = "Sonstiges"


def effective_score(relevance_score: int, corrected_score: int | None) -> int:
    """Score used for ranking: the operator override wins when set."""
    if corrected_score is not None:
        return corrected_score
    return relevance_score


class SourceBase(SQLModel):
    """Base model for curated sources."""

    url: str = Field(unique=True, index=True, max_length=2048)
    title: str = Field(default="", max_length=512)
    category: SourceCategory = Field(default=SourceCategory.Sonstiges, index=True)

    # Headline line, newline, then the longer detail block
    summary: str = Field(default="")

    tags: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    language: str = Field(default="Deutsch", max_length=32, index=True)

    # Query text that produced this source, None when added by hand.
    # Plain text on purpose: deleting or editing the query leaves sources attributed.
    source_query: str | None = Field(default=None, max_length=512, index=True)

    relevance_score: int = Field(default=5, ge=0, le=10)
    corrected_score: int | None = Field(default=None, ge=0, le=10)
    star_rating: bool = Field(default=False, index=True)


class Source(SourceBase, table=True):
    """Curated source record."""

    __tablename__ = "source"

    id: int | None = Field(default=None, primary_key=True)
    date_added: datetime = Field(default_factory=datetime.utcnow, index=True)
    last_updated: datetime = Field(default_factory=datetime.utcnow)

    @property
    def display_score(self) -> int:
        return effective_score(self.relevance_score, self.corrected_score)


class SourceCreate(SourceBase):
    """Schema for adding a source by hand."""
    pass


class SourceRead(SourceBase):
    """Schema for reading a source."""

    id: int
    date_added: datetime
    last_updated: datetime

    @computed_field
    @property
    def display_score(self) -> int:
        return effective_score(self.relevance_score, self.corrected_score)


class SourceUpdate(SQLModel):
    """Schema for editing a source. Only the fields that are sent are changed."""

    title: str | None = None
    category: SourceCategory | None = None
    summary: str | None = None
    tags: list[str] | None = None
    language: str | None = None
    corrected_score: int | None = Field(default=None, ge=0, le=10)
    star_rating: bool | None = None
