"""
SQLAlchemy ORM Models for VBALoom

- AccessDatabase: an imported Access application and its object catalogue
- Module: one version of a VBA module with its pipeline state
"""

import uuid
from datetime import datetime

from sqlalchemy import (
    JSON, Boolean, Column, ForeignKey, Index, Integer, String, Text, TIMESTAMP, TypeDecorator,
)
from sqlalchemy.dialects.postgresql import JSONB, UUID as PostgreSQL_UUID
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONType = JSON().with_variant(JSONB, "postgresql")


class UUID(TypeDecorator):
    """Platform-independent UUID type.

    Uses PostgreSQL's UUID type when available, otherwise stores as String(36).
    """
    impl = String
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if dialect.name == 'postgresql':
            return dialect.type_descriptor(PostgreSQL_UUID(as_uuid=True))
        return dialect.type_descriptor(String(36))

    def process_bind_param(self, value, dialect):
        if value is None or dialect.name == 'postgresql':
            return value
        return str(value if isinstance(value, uuid.UUID) else uuid.UUID(str(value)))

    def process_result_value(self, value, dialect):
        if value is None or dialect.name == 'postgresql':
            return value
        return value if isinstance(value, uuid.UUID) else uuid.UUID(value)


class AccessDatabase(Base):
    """An imported Access application.

    The catalogue lists feed gap auto-resolution (``app_objects``).
    """
    __tablename__ = "access_databases"

    database_id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    tables = Column(JSONType, default=list)
    queries = Column(JSONType, default=list)
    forms = Column(JSONType, default=list)
    reports = Column(JSONType, default=list)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)

    modules = relationship("Module", back_populates="database", cascade="all, delete-orphan")

    def app_objects(self) -> dict:
        return {
            "tables": list(self.tables or []),
            "queries": list(self.queries or []),
            "forms": list(self.forms or []),
            "reports": list(self.reports or []),
        }


class Module(Base):
    """One version of a VBA module.

    ``intents`` holds the pipeline's JSON state:
    ``{intents, validation, mapped, stats, gap_questions}``.
    """
    __tablename__ = "modules"

    module_id = Column(UUID(), primary_key=True, default=uuid.uuid4)
    database_id = Column(String(64), ForeignKey("access_databases.database_id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    version = Column(Integer, default=1, nullable=False)
    vba_source = Column(Text, nullable=True)
    cljs_source = Column(Text, nullable=True)
    intents = Column(JSONType, nullable=True)
    status = Column(String(30), default="imported", nullable=False)  # imported, translated, approved
    is_current = Column(Boolean, default=True, nullable=False)
    created_at = Column(TIMESTAMP, default=datetime.utcnow, nullable=False)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    database = relationship("AccessDatabase", back_populates="modules")

    __table_args__ = (
        Index("idx_modules_database_name_version", "database_id", "name", "version"),
        Index("idx_modules_current", "database_id", "is_current"),
    )

    def to_record(self) -> dict:
        """Raw record in the shape :func:`normalize_module` accepts."""
        return {
            "name": self.name,
            "vba_source": self.vba_source,
            "cljs_source": self.cljs_source,
            "intents": self.intents,
            "version": self.version,
            "status": self.status,
        }
