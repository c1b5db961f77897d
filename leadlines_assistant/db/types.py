"""Owner keys and surrogate row ids, stored portably across Postgres and SQLite."""

from __future__ import annotations

import uuid

from sqlalchemy import String, types
from sqlalchemy.dialects import postgresql


class GUID(types.TypeDecorator):
    """Canonical lowercase UUID string in Python; native UUID on Postgres.

    Binding anything that does not parse as a UUID fails, so a malformed owner
    key can never reach an owner-scoped query.
    """

    impl = String(36)
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == "postgresql":
            return dialect.type_descriptor(postgresql.UUID(as_uuid=False))
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        return None if value is None else self.canonical(value)

    def process_result_value(self, value, dialect):
        return None if value is None else str(value)

    @staticmethod
    def canonical(value) -> str:
        if isinstance(value, uuid.UUID):
            return str(value)
        return str(uuid.UUID(str(value)))

    @staticmethod
    def new() -> str:
        return str(uuid.uuid4())
