"""Database utilities for DevConnect."""

from .session import (
    create_schema,
    dispose_engine,
    get_engine,
    get_session_factory,
    init_database,
    session_scope,
)

__all__ = [
    "create_schema",
    "dispose_engine",
    "get_engine",
    "get_session_factory",
    "init_database",
    "session_scope",
]
