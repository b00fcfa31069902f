from typing import Iterator

from fastapi import Request
from sqlalchemy import event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

from app.config import Settings
from app.logging import get_logger

logger = get_logger(__name__)


def build_engine(settings: Settings) -> Engine:
    """One bounded pool per process; handed to the app, never imported as a global."""
    url = settings.database_url
    if url in ("sqlite://", "sqlite:///:memory:"):
        engine = create_engine(url, connect_args={"check_same_thread": False}, poolclass=StaticPool)
    else:
        connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
        engine = create_engine(
            url,
            connect_args=connect_args,
            pool_pre_ping=True,
            pool_size=settings.db_pool_size,
            max_overflow=0,
            pool_timeout=settings.db_pool_timeout_s,
            pool_recycle=settings.db_pool_recycle_s,
        )
    enable_sqlite_foreign_keys(engine)
    return engine


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """SQLite ignores ON DELETE CASCADE unless the pragma is set per connection."""
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, _record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


def create_db_and_tables(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)
    if engine.dialect.name == "postgresql":
        _migrate_user_message_count(engine)
        _migrate_shopping_list_unique_plan(engine)
        _migrate_chat_conversation_index(engine)


def _migrate_user_message_count(engine: Engine) -> None:
    """Add message_count column if missing (for existing deployments)."""
    try:
        with engine.connect() as conn:
            conn.execute(text("ALTER TABLE users ADD COLUMN IF NOT EXISTS message_count INT DEFAULT 0"))
            conn.commit()
    except SQLAlchemyError as exc:
        logger.warning("db.migrate.failed step=user_message_count error=%s", exc)


def _migrate_shopping_list_unique_plan(engine: Engine) -> None:
    """One shopping list per plan on databases created before the constraint existed."""
    try:
        with engine.connect() as conn:
            conn.execute(text("""
                DO $$
                BEGIN
                  IF NOT EXISTS (
                    SELECT 1 FROM pg_constraint WHERE conname = 'shopping_lists_meal_plan_id_key'
                  ) AND NOT EXISTS (
                    SELECT 1 FROM pg_indexes
                    WHERE tablename = 'shopping_lists' AND indexdef LIKE 'CREATE UNIQUE INDEX%meal_plan_id%'
                  ) THEN
                    ALTER TABLE shopping_lists ADD CONSTRAINT shopping_lists_meal_plan_id_key UNIQUE (meal_plan_id);
                  END IF;
                END $$;
            """))
            conn.commit()
    except SQLAlchemyError as exc:
        logger.warning("db.migrate.failed step=shopping_list_unique_plan error=%s", exc)


def _migrate_chat_conversation_index(engine: Engine) -> None:
    try:
        with engine.connect() as conn:
            conn.execute(text(
                "CREATE INDEX IF NOT EXISTS idx_chat_messages_conversation_user "
                "ON chat_messages(conversation_id, user_id)"
            ))
            conn.commit()
    except SQLAlchemyError as exc:
        logger.warning("db.migrate.failed step=chat_conversation_index error=%s", exc)


def check_database(engine: Engine) -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as exc:
        logger.warning("db.health.failed error=%s", exc)
        return False


def get_session(request: Request) -> Iterator[Session]:
    """Request-scoped session; the pooled connection goes back even when the handler raises."""
    session = Session(request.app.state.engine)
    try:
        yield session
    finally:
        session.close()
