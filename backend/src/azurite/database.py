import logging
from collections.abc import Generator
from pathlib import Path

from sqlalchemy import Engine, event
from sqlmodel import Session, SQLModel, create_engine

from azurite.config import settings

logger = logging.getLogger(__name__)


def make_engine(url: str, **kwargs) -> Engine:
    """Create a SQLite engine with the pragmas and transaction handling the app relies on.

    pysqlite's implicit transaction handling breaks SAVEPOINT, so the driver is
    put in autocommit mode and SQLAlchemy emits its own BEGIN.
    """
    connect_args = {"timeout": 30, "check_same_thread": False}
    connect_args.update(kwargs.pop("connect_args", {}))
    eng = create_engine(url, echo=False, connect_args=connect_args, **kwargs)

    @event.listens_for(eng, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA journal_mode=WAL")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(eng, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return eng


settings.db_path.parent.mkdir(parents=True, exist_ok=True)
engine = make_engine(f"sqlite:///{settings.db_path}")


def run_migrations(eng: Engine, migrations_dir: Path) -> list[str]:
    """Apply ``*.sql`` files in lexicographic order, skipping those already recorded."""
    raw = eng.raw_connection()
    try:
        conn = raw.driver_connection
        conn.execute(
            "CREATE TABLE IF NOT EXISTS schema_migrations ("
            "filename TEXT PRIMARY KEY, "
            "applied_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP)"
        )
        applied = {row[0] for row in conn.execute("SELECT filename FROM schema_migrations")}
        if not migrations_dir.is_dir():
            return []

        newly_applied: list[str] = []
        for path in sorted(migrations_dir.glob("*.sql"), key=lambda p: p.name):
            if path.name in applied:
                continue
            script = path.read_text(encoding="utf-8")
            quoted = path.name.replace("'", "''")
            try:
                conn.executescript(
                    f"BEGIN;\n{script}\n"
                    f"INSERT INTO schema_migrations (filename) VALUES ('{quoted}');\n"
                    "COMMIT;"
                )
            except Exception:
                if conn.in_transaction:
                    conn.execute("ROLLBACK")
                logger.error("Migration %s failed", path.name)
                raise
            logger.info("Applied migration %s", path.name)
            newly_applied.append(path.name)
        return newly_applied
    finally:
        raw.close()


def create_db_and_tables(eng: Engine | None = None) -> None:
    eng = eng or engine
    SQLModel.metadata.create_all(eng)
    run_migrations(eng, settings.migrations_path)


def checkpoint_and_close(eng: Engine | None = None) -> None:
    """Flush the WAL into the main database file and release all pooled connections."""
    eng = eng or engine
    raw = eng.raw_connection()
    try:
        raw.driver_connection.execute("PRAGMA wal_checkpoint(FULL)")
    finally:
        raw.close()
    eng.dispose()


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
