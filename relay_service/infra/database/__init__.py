"""Database engine and session management."""

from relay_service.infra.database.session import AsyncSessionLocal, engine, ensure_schema

__all__ = ["AsyncSessionLocal", "engine", "ensure_schema"]
