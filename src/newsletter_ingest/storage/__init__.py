"""Storage layer implementations."""

from .burst import SqliteBurstLimiter
from .sqlite import SqliteEmailRepository

__all__ = ["SqliteBurstLimiter", "SqliteEmailRepository"]
