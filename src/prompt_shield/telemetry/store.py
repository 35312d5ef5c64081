"""
Prompt Shield - Attack Stores

Where the attack recorder hands its flushed batches. Two backends:
- memory: process-local list, for tests and development
- sqlite: async SQLAlchemy + aiosqlite, table prompt_injection_attacks

Select the backend with RECORDER_BACKEND=memory|sqlite.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from ..errors import ConfigurationError, StoreError
from .db_models import AttackRecord, Base

if TYPE_CHECKING:
    from ..config import RecorderConfig
    from ..security.recorder import DetectedAttack

logger = logging.getLogger(__name__)


class AttackStore(ABC):
    """
    Abstract base class for attack stores.

    Implementations may raise on failure; the recorder treats every
    persistence error as best-effort telemetry loss.
    """

    name: str = "abstract"

    @abstractmethod
    async def insert_many(self, attacks: Sequence[DetectedAttack]) -> int:
        """
        Persist a batch of attacks.

        Returns:
            Number of records written

        Raises:
            StoreError: If the batch could not be written
        """
        pass

    async def close(self) -> None:
        """Release resources. Override if needed."""
        pass


class MemoryAttackStore(AttackStore):
    """Keeps every flushed record in memory."""

    name = "memory"

    def __init__(self) -> None:
        self.records: list[DetectedAttack] = []
        self.batches: list[int] = []

    async def insert_many(self, attacks: Sequence[DetectedAttack]) -> int:
        self.records.extend(attacks)
        self.batches.append(len(attacks))
        return len(attacks)


class SQLAlchemyAttackStore(AttackStore):
    """
    Writes batches to SQLite through an async SQLAlchemy session.

    The database file, its parent directory and the table are created on the
    first write.
    """

    name = "sqlite"

    def __init__(self, db_path: str = "./data/attacks.db"):
        self.db_path = Path(db_path).resolve()
        self._engine: AsyncEngine = create_async_engine(f"sqlite+aiosqlite:///{self.db_path}")
        self._sessions = async_sessionmaker(self._engine, expire_on_commit=False)
        self._schema_ready = False
        self._schema_lock = asyncio.Lock()

    async def _ensure_schema(self) -> None:
        async with self._schema_lock:
            if self._schema_ready:
                return
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            async with self._engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            self._schema_ready = True

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        if not self._schema_ready:
            await self._ensure_schema()
        async with self._sessions() as session:
            yield session

    async def insert_many(self, attacks: Sequence[DetectedAttack]) -> int:
        if not attacks:
            return 0

        try:
            async with self._session() as session:
                session.add_all([AttackRecord.from_attack(attack) for attack in attacks])
                await session.commit()
        except Exception as e:
            raise StoreError(self.name, details={"batch_size": len(attacks), "error": str(e)}) from e

        return len(attacks)

    async def fetch_recent(self, limit: int = 100) -> list[dict]:
        """Most recent records first (for inspection and tests)."""
        async with self._session() as session:
            query = select(AttackRecord).order_by(AttackRecord.detected_at.desc()).limit(limit)
            result = await session.execute(query)
            return [record.to_dict() for record in result.scalars().all()]

    async def count(self) -> int:
        async with self._session() as session:
            result = await session.execute(select(func.count()).select_from(AttackRecord))
            return int(result.scalar_one())

    async def close(self) -> None:
        await self._engine.dispose()
        self._schema_ready = False


def create_attack_store(config: RecorderConfig | None = None) -> AttackStore:
    """
    Create the attack store selected by configuration.

    Args:
        config: Recorder configuration (global config if None)

    Returns:
        AttackStore instance

    Raises:
        ConfigurationError: If the backend is unknown
    """
    # Imported here: the config package imports the security package, which imports this module
    from ..config import StoreBackend, get_config

    if config is None:
        config = get_config().recorder

    try:
        backend = StoreBackend(config.backend)
    except ValueError as e:
        raise ConfigurationError(
            f"Unsupported attack store backend: {config.backend}",
            details={"backend": str(config.backend)},
        ) from e

    if backend is StoreBackend.SQLITE:
        logger.info("Using SQLite attack store", extra={"db_path": config.db_path})
        return SQLAlchemyAttackStore(db_path=config.db_path)

    return MemoryAttackStore()
