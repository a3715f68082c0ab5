from datetime import datetime, timezone
from typing import Optional, Protocol

from sqlalchemy import DateTime, inspect
from sqlalchemy.engine import Engine
from sqlmodel import Field, Session, SQLModel, create_engine

from config import DB_FILE, PERSIST_TIMEOUT_SECONDS

DATABASE_URL = f"sqlite:///{DB_FILE}"

engine = create_engine(
    DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False, "timeout": PERSIST_TIMEOUT_SECONDS},
)


class SnapshotBlob(SQLModel, table=True):
    key: str = Field(primary_key=True, max_length=120)
    payload: str
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc), sa_type=DateTime(timezone=True)
    )


REQUIRED_COLUMNS = {
    "snapshotblob": {"key", "payload", "updated_at"},
}


class BlobStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def put(self, key: str, payload: str) -> None: ...


class SqlBlobStore:
    """Key/value blob store backed by a single SQLModel table."""

    def __init__(self, bind: Engine):
        self.bind = bind

    def get(self, key: str) -> Optional[str]:
        with Session(self.bind) as session:
            row = session.get(SnapshotBlob, key)
            return row.payload if row else None

    def put(self, key: str, payload: str) -> None:
        with Session(self.bind) as session:
            row = session.get(SnapshotBlob, key)
            if row is None:
                row = SnapshotBlob(key=key, payload=payload)
            else:
                row.payload = payload
                row.updated_at = datetime.now(timezone.utc)
            session.add(row)
            try:
                session.commit()
            except Exception:
                session.rollback()
                raise


def _schema_needs_rebuild(bind: Engine) -> bool:
    inspector = inspect(bind)
    existing_tables = set(inspector.get_table_names())

    for table_name, required_cols in REQUIRED_COLUMNS.items():
        if table_name not in existing_tables:
            continue
        existing_cols = {col["name"] for col in inspector.get_columns(table_name)}
        if not required_cols.issubset(existing_cols):
            return True

    return False


def create_db(bind: Engine = engine):
    if _schema_needs_rebuild(bind):
        print("[DB] Schema mismatch detected. Rebuilding local SQLite schema.")
        SQLModel.metadata.drop_all(bind)
    SQLModel.metadata.create_all(bind)
