"""
SQLAlchemy ORM models for persistent storage.

Enum-valued columns are stored as plain strings; they are decoded into
closed enums exactly once by `parsers.records` when rows are loaded.
"""

from datetime import datetime

from sqlalchemy import (
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class CharacterAdvanceDB(Base):
    """
    One advance in a character's history.

    `advance_number` ordering is authoritative; timestamps are informational.
    """

    __tablename__ = "character_advances"
    __table_args__ = (
        UniqueConstraint("character_id", "advance_number", name="uq_character_advance_number"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    character_id: Mapped[int] = mapped_column(Integer, index=True)
    advance_number: Mapped[int] = mapped_column(Integer)
    advance_type: Mapped[str] = mapped_column(String(32))
    edge_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    attribute_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    skill_id_1: Mapped[int | None] = mapped_column(Integer, nullable=True)
    skill_id_2: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hindrance_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    hindrance_action: Mapped[str | None] = mapped_column(String(32), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    def __repr__(self) -> str:
        return (
            f"<CharacterAdvanceDB(character={self.character_id}, "
            f"number={self.advance_number}, type={self.advance_type})>"
        )


class RequirementDB(Base):
    """A leaf requirement row."""

    __tablename__ = "requirements"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    requirement_type: Mapped[str] = mapped_column(String(32))
    target_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str] = mapped_column(Text, default="")

    def __repr__(self) -> str:
        return f"<RequirementDB(id={self.id}, type={self.requirement_type})>"


class RequirementExpressionDB(Base):
    """
    A node of a requirement expression tree.

    Nodes are addressed by parent id and position; roots have no parent and
    are keyed by the owning entity (owner_type + owner_id).
    """

    __tablename__ = "requirement_expressions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_type: Mapped[str] = mapped_column(String(32), index=True)
    owner_id: Mapped[int] = mapped_column(Integer, index=True)
    parent_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("requirement_expressions.id", ondelete="CASCADE"), nullable=True
    )
    node_type: Mapped[str] = mapped_column(String(32))
    requirement_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("requirements.id"), nullable=True
    )
    position: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return (
            f"<RequirementExpressionDB(id={self.id}, owner={self.owner_type}:{self.owner_id}, "
            f"node={self.node_type})>"
        )


class ModifierDB(Base):
    """A modifier row attached to an owning entity."""

    __tablename__ = "modifiers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    owner_type: Mapped[str] = mapped_column(String(32), index=True)
    owner_id: Mapped[int] = mapped_column(Integer, index=True)
    target_type: Mapped[str | None] = mapped_column(String(32), nullable=True)
    target_identifier: Mapped[str | None] = mapped_column(String(255), nullable=True)
    value_type: Mapped[str] = mapped_column(String(32))
    value: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str] = mapped_column(Text, default="")

    def __repr__(self) -> str:
        return f"<ModifierDB(id={self.id}, {self.value_type} -> {self.target_identifier})>"
