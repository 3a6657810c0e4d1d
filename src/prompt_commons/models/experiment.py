"""Experiment models for the system of record.

An experiment is a shared prompt with a history of versions. Exactly one
version is active at a time, and only the active version is projected into
the search index.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from prompt_commons.models.base import Base


class Experiment(Base):
    """A shared prompt experiment.

    active_version_id points at the version that the catalogue shows and the
    search index mirrors. It is a plain column rather than a foreign key to
    avoid a circular constraint with experiment_version.experiment_id.
    """

    __tablename__ = "experiment"
    __table_args__ = (Index("ix_experiment_created_at", "created_at"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String)
    active_version_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now().astimezone()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now().astimezone(),
        onupdate=lambda: datetime.now().astimezone(),
    )

    versions = relationship(
        "ExperimentVersion",
        back_populates="experiment",
        cascade="all, delete-orphan",
        order_by="ExperimentVersion.id",
    )

    def __repr__(self) -> str:
        return f"Experiment(id={self.id}, title='{self.title}', active_version_id={self.active_version_id})"


class ExperimentVersion(Base):
    """One revision of an experiment's prompt and its reported reproduction rate."""

    __tablename__ = "experiment_version"
    __table_args__ = (Index("ix_experiment_version_experiment_id", "experiment_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    experiment_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("experiment.id", ondelete="CASCADE"), nullable=False
    )
    version_number: Mapped[str] = mapped_column(String, default="1.0")
    prompt_text: Mapped[str] = mapped_column(Text)
    prompt_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    ai_model: Mapped[Optional[str]] = mapped_column(String, nullable=True)
    # 0-100, percentage of reproduction reports that succeeded
    reproduction_rate: Mapped[int] = mapped_column(Integer, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now().astimezone()
    )

    experiment = relationship("Experiment", back_populates="versions")
    tags = relationship(
        "ExperimentTag",
        back_populates="version",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ExperimentTag.id",
    )

    def __repr__(self) -> str:
        return f"ExperimentVersion(id={self.id}, experiment_id={self.experiment_id}, version='{self.version_number}')"


class ExperimentTag(Base):
    """A tag attached to a specific experiment version."""

    __tablename__ = "experiment_tag"
    __table_args__ = (Index("ix_experiment_tag_name", "tag_name"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    version_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("experiment_version.id", ondelete="CASCADE"), nullable=False
    )
    tag_name: Mapped[str] = mapped_column(String)

    version = relationship("ExperimentVersion", back_populates="tags")
