# backend/db.py
import os
import uuid
import datetime
from typing import Optional, Dict, Any, List

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy import create_engine, literal_column, update
from sqlalchemy.orm import sessionmaker, declarative_base, Session
from sqlalchemy.exc import SQLAlchemyError

from backend import monitoring

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./brds.db")

def _make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)

engine = _make_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


def reconfigure(url: str):
    """Reconfigure the DB engine and session factory at runtime (for tests)."""
    global engine, SessionLocal
    engine.dispose()
    engine = _make_engine(url)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


MIGRATIONS_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), "migrations")


def alembic_config() -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", MIGRATIONS_DIR)
    return cfg


def head_revision() -> Optional[str]:
    return ScriptDirectory.from_config(alembic_config()).get_current_head()


def current_revision(target_engine=None) -> Optional[str]:
    with (target_engine or engine).connect() as conn:
        return MigrationContext.configure(conn).get_current_revision()


def migrate(target_engine=None) -> Optional[str]:
    """Upgrade the schema to head. Returns the revision the database ends at."""
    target_engine = target_engine or engine
    cfg = alembic_config()
    with target_engine.begin() as conn:
        cfg.attributes["connection"] = conn
        command.upgrade(cfg, "head")
    revision = current_revision(target_engine)
    monitoring.logger.info("Database schema at revision", extra={"revision": revision})
    return revision


def init_db() -> Optional[str]:
    """Bring the current engine's schema up to date."""
    return migrate(engine)


def _iso(ts) -> Optional[str]:
    return ts.isoformat() if hasattr(ts, "isoformat") else ts


def _brd_to_dict(row) -> Dict[str, Any]:
    return {
        "id": row.id,
        "title": row.title,
        "content": row.content,
        "transcription": row.transcription,
        "extra_notes": row.extra_notes,
        "final_doc_path": row.final_doc_path,
        "language": row.language,
        "created_at": _iso(row.created_at),
    }


def _chat_to_dict(row) -> Dict[str, Any]:
    return {
        "id": row.id,
        "brd_id": row.brd_id,
        "role": row.role,
        "content": row.content,
        "created_at": _iso(row.created_at),
    }


# ---------------------------------------------------------------------------
# BRDs
# ---------------------------------------------------------------------------
def list_brds() -> List[Dict[str, Any]]:
    """All BRD records, newest first."""
    from backend.models import Brd
    db: Session = SessionLocal()
    try:
        rows = (
            db.query(Brd)
            .order_by(Brd.created_at.desc(), literal_column("brds.rowid").desc())
            .all()
        )
        return [_brd_to_dict(r) for r in rows]
    finally:
        db.close()


def get_brd(brd_id: str) -> Optional[Dict[str, Any]]:
    from backend.models import Brd
    db: Session = SessionLocal()
    try:
        row = db.get(Brd, brd_id)
        return _brd_to_dict(row) if row else None
    finally:
        db.close()


def create_brd(fields: Dict[str, Any]) -> str:
    """
    Insert a BRD and return its new id.
    fields may include: title, content, transcription, extra_notes, language.
    """
    from backend.models import Brd
    db: Session = SessionLocal()
    try:
        new_id = str(uuid.uuid4())
        brd = Brd(
            id=new_id,
            title=fields.get("title"),
            content=fields.get("content"),
            transcription=fields.get("transcription"),
            extra_notes=fields.get("extra_notes"),
            language=fields.get("language") or "en",
            created_at=datetime.datetime.utcnow(),
        )
        db.add(brd)
        db.commit()
        monitoring.inc_record_written("brds", "insert")
        return new_id
    except SQLAlchemyError:
        db.rollback()
        monitoring.logger.exception("DB save error", extra={"table": "brds"})
        raise
    finally:
        db.close()


def _update_brd_column(brd_id: str, **values) -> bool:
    from backend.models import Brd
    db: Session = SessionLocal()
    try:
        result = db.execute(update(Brd).where(Brd.id == brd_id).values(**values))
        db.commit()
        matched = result.rowcount > 0
        if matched:
            monitoring.inc_record_written("brds", "update")
        return matched
    except SQLAlchemyError:
        db.rollback()
        monitoring.logger.exception("DB update error", extra={"table": "brds", "brd_id": brd_id})
        raise
    finally:
        db.close()


def set_final_doc_path(brd_id: str, path: str) -> bool:
    """Record the approved document path. Returns False when no BRD matched."""
    return _update_brd_column(brd_id, final_doc_path=path)


def update_brd_content(brd_id: str, content: str) -> bool:
    """Replace the BRD body wholesale. Returns False when no BRD matched."""
    return _update_brd_column(brd_id, content=content)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------
def list_chat(brd_id: str) -> List[Dict[str, Any]]:
    """Messages for one BRD, oldest first (insertion order breaks timestamp ties)."""
    from backend.models import ChatMessage
    db: Session = SessionLocal()
    try:
        rows = (
            db.query(ChatMessage)
            .filter(ChatMessage.brd_id == brd_id)
            .order_by(ChatMessage.created_at.asc(), literal_column("chat_messages.rowid").asc())
            .all()
        )
        return [_chat_to_dict(r) for r in rows]
    finally:
        db.close()


def append_chat(brd_id: str, role: str, content: str) -> str:
    from backend.models import ChatMessage
    db: Session = SessionLocal()
    try:
        new_id = str(uuid.uuid4())
        msg = ChatMessage(
            id=new_id,
            brd_id=brd_id,
            role=role,
            content=content,
            created_at=datetime.datetime.utcnow(),
        )
        db.add(msg)
        db.commit()
        monitoring.inc_record_written("chat_messages", "insert")
        return new_id
    except SQLAlchemyError:
        db.rollback()
        monitoring.logger.exception("DB save error", extra={"table": "chat_messages", "brd_id": brd_id})
        raise
    finally:
        db.close()
