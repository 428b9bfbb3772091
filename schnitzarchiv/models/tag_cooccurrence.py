"""Tag co-occurrence model."""

from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel


class TagCooccurrence(SQLModel, table=True):
    """How often two tags appeared together on the same source.

    The pair is stored sorted (tag1 < tag2), so each unordered pair has one row.
    """

    __tablename__ = "tag_cooccurrence"
    __table_args__ = (UniqueConstraint("tag1", "tag2", name="uq_tag_cooccurrence_pair"),)

    id: int | None = Field(default=None, primary_key=True)
    tag1: str = Field(max_length=128, index=True)
    tag2: str = Field(max_length=128, index=True)
    count: int = Field(default=1, ge=1)
    last_updated: datetime = Field(default_factory=datetime.utcnow)
