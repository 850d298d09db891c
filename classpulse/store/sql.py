"""
SQL Data Store

Local stand-in for the hosted store, built on SQLAlchemy.
Designed for both PostgreSQL (DATABASE_URL) and local development (SQLite).

Rows are returned in the same shape the Supabase REST API produces
(ISO dates, embedded max_score/assessment_date for responses), so the
cache and the aggregator cannot tell the backends apart.

Session calls are synchronous and block the event loop for the duration
of each query. Fine for local runs, the CLI and tests; use SupabaseStore
for concurrent workloads.
"""

import logging
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import Date, DateTime, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from classpulse.cache.keys import EntityType
from classpulse.store.base import DataStore
from classpulse.store.exceptions import RecordNotFoundError, StoreError
from classpulse.store.models import (
    Assessment, AssessmentItem, Base, Goal, Student, StudentPerformance, StudentResponse,
)
from classpulse.store.queries import get_query_spec
from classpulse.utils.config import Settings, get_settings

logger = logging.getLogger(__name__)


ENTITY_MODELS = {
    EntityType.STUDENTS: Student,
    EntityType.ASSESSMENTS: Assessment,
    EntityType.PERFORMANCE: StudentPerformance,
    EntityType.GOALS: Goal,
    EntityType.RESPONSES: StudentResponse,
}


# =============================================================================
# ENGINE CONFIGURATION
# =============================================================================

def get_database_url(settings: Optional[Settings] = None) -> str:
    """
    Get database URL from settings.

    PostgreSQL when DATABASE_URL is set, SQLite file otherwise.
    """
    settings = settings or get_settings()
    url = settings.DATABASE_URL

    if url:
        # Hosted PostgreSQL URLs use postgres:// but SQLAlchemy needs postgresql://
        if url.startswith("postgres://"):
            url = url.replace("postgres://", "postgresql://", 1)
        return url

    logger.warning(f"No DATABASE_URL found, using SQLite: {settings.SQLITE_PATH}")
    return f"sqlite:///{settings.SQLITE_PATH}"


def create_session_factory(url: Optional[str] = None, echo: bool = False) -> sessionmaker:
    """
    Create engine and session factory, creating tables if needed.

    ``sqlite://`` (in-memory) shares one connection so every session sees
    the same database.
    """
    url = url or get_database_url()

    if url.startswith("sqlite"):
        kwargs: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(url, echo=echo, **kwargs)

        # Enable foreign keys for SQLite
        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()
    else:
        engine = create_engine(url, echo=echo, pool_pre_ping=True)

    Base.metadata.create_all(engine)
    logger.info(f"SQL store ready ({engine.dialect.name})")

    return sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )


# =============================================================================
# STORE
# =============================================================================

class SqlStore(DataStore):
    """DataStore backed by a SQLAlchemy session factory."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "SqlStore":
        settings = settings or get_settings()
        return cls(create_session_factory(get_database_url(settings), echo=settings.SQL_DEBUG))

    async def fetch_collection(self, entity: EntityType, owner_id: str) -> List[Dict[str, Any]]:
        if entity == EntityType.RESPONSES:
            return self._run(entity, lambda db: self._fetch_responses(db, owner_id))

        spec = get_query_spec(entity)
        model = ENTITY_MODELS[entity]

        def query(db: Session) -> List[Dict[str, Any]]:
            q = db.query(model).filter(getattr(model, spec.filter_column) == owner_id)
            if spec.order_by:
                column = getattr(model, spec.order_by)
                q = q.order_by(column.desc() if spec.descending else column.asc())
            if spec.limit:
                q = q.limit(spec.limit)
            return [_row_to_dict(obj, spec.select) for obj in q.all()]

        return self._run(entity, query)

    async def fetch_singleton(self, entity: EntityType, identifier: str) -> Dict[str, Any]:
        spec = get_query_spec(entity)
        model = ENTITY_MODELS[entity]

        def query(db: Session) -> Optional[Dict[str, Any]]:
            obj = db.query(model).filter(getattr(model, spec.filter_column) == identifier).first()
            return _row_to_dict(obj, spec.select) if obj is not None else None

        row = self._run(entity, query)
        if row is None:
            raise RecordNotFoundError(
                f"No {spec.table} row for {spec.filter_column}={identifier}",
                entity=entity.value,
                status_code=404,
            )
        return row

    async def upsert(self, entity: EntityType, key: str, record: Dict[str, Any]) -> Dict[str, Any]:
        spec = get_query_spec(entity)
        model = ENTITY_MODELS[entity]
        columns = model.__table__.columns
        values = {
            name: _coerce(columns[name].type, value)
            for name, value in record.items()
            if name in columns and name != "id"
        }
        values[spec.conflict_column] = key

        def write(db: Session) -> Dict[str, Any]:
            existing = db.query(model).filter(getattr(model, spec.conflict_column) == key).first()
            if existing:
                for name, value in values.items():
                    setattr(existing, name, value)
                obj = existing
            else:
                obj = model(**values)
                db.add(obj)
            db.commit()
            return _row_to_dict(obj, ("*",))

        return self._run(entity, write)

    # =========================================================================
    # Helpers
    # =========================================================================

    def _fetch_responses(self, db: Session, student_id: str) -> List[Dict[str, Any]]:
        rows = (
            db.query(StudentResponse, AssessmentItem.max_score, Assessment.assessment_date)
            .join(AssessmentItem, StudentResponse.assessment_item_id == AssessmentItem.id)
            .outerjoin(Assessment, StudentResponse.assessment_id == Assessment.id)
            .filter(StudentResponse.student_id == student_id)
            .order_by(StudentResponse.created_at.asc())
            .all()
        )
        results = []
        for response, max_score, assessment_date in rows:
            row = _row_to_dict(response, ("*",))
            row["assessment_items"] = {"max_score": max_score}
            row["assessments"] = {"assessment_date": _serialize(assessment_date)}
            results.append(row)
        return results

    def _run(self, entity: EntityType, operation: Callable[[Session], Any]) -> Any:
        db = self._session_factory()
        try:
            return operation(db)
        except Exception as e:
            db.rollback()
            raise StoreError(f"Database error for {entity.value}: {e}", entity=entity.value) from e
        finally:
            db.close()


def _serialize(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def _coerce(column_type: Any, value: Any) -> Any:
    """Parse ISO strings for date/datetime columns (SQLite needs real objects)."""
    if isinstance(value, str):
        if isinstance(column_type, DateTime):
            return datetime.fromisoformat(value)
        if isinstance(column_type, Date):
            return date.fromisoformat(value[:10])
    return value


def _row_to_dict(obj: Any, select: tuple) -> Dict[str, Any]:
    names = [c.name for c in obj.__table__.columns]
    if select != ("*",):
        names = [name for name in names if name in select]
    return {name: _serialize(getattr(obj, name)) for name in names}
