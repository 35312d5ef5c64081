"""
Prompt Shield - Telemetry Module

Persistence for detected-attack records flushed by the attack recorder.
"""

from .db_models import AttackRecord, Base
from .store import AttackStore, MemoryAttackStore, SQLAlchemyAttackStore, create_attack_store

__all__ = [
    "AttackRecord",
    "Base",
    "AttackStore",
    "MemoryAttackStore",
    "SQLAlchemyAttackStore",
    "create_attack_store",
]
