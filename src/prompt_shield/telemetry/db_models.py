"""
Prompt Shield - Attack Database Models

SQLAlchemy models for persisted detected-attack records.
Simple SQLite backend for zero-ops deployment.
"""

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import Boolean, Index, Integer, String, Text
from sqlalchemy.ext.asyncio import AsyncAttrs
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

if TYPE_CHECKING:
    from ..security.recorder import DetectedAttack


class Base(AsyncAttrs, DeclarativeBase):
    """Base class for all database models."""

    pass


class AttackRecord(Base):
    """
    One detected prompt-injection attempt.

    Rows are written in batches by the attack recorder and kept as a
    labelled dataset (llm_verified marks semantic-scanner confirmations).
    """

    __tablename__ = "prompt_injection_attacks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    input_text: Mapped[str] = mapped_column(Text, nullable=False)
    threats: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON list
    categories: Mapped[str] = mapped_column(Text, nullable=False, default="[]")  # JSON list
    risk_level: Mapped[str] = mapped_column(String(16), nullable=False, index=True)
    llm_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    context: Mapped[str] = mapped_column(String(64), nullable=False)
    detected_at: Mapped[datetime] = mapped_column(nullable=False, index=True, default=lambda: datetime.now(UTC))

    __table_args__ = (Index("idx_attack_context_detected_at", "context", "detected_at"),)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "input_text": self.input_text,
            "threats": json.loads(self.threats) if self.threats else [],
            "categories": json.loads(self.categories) if self.categories else [],
            "risk_level": self.risk_level,
            "llm_verified": self.llm_verified,
            "context": self.context,
            "detected_at": self.detected_at.isoformat(),
        }

    @classmethod
    def from_attack(cls, attack: "DetectedAttack") -> "AttackRecord":
        """Create an AttackRecord from a buffered DetectedAttack."""
        return cls(
            input_text=attack.input_snippet,
            threats=json.dumps(attack.threats),
            categories=json.dumps(attack.categories),
            risk_level=attack.risk_level.label,
            llm_verified=attack.llm_verified,
            context=attack.context,
            detected_at=attack.timestamp,
        )
