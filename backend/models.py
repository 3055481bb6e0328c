from sqlalchemy import Column, String, DateTime, Text, ForeignKey
import datetime

from backend.db import Base


class Brd(Base):
    __tablename__ = "brds"

    id = Column(String(36), primary_key=True)
    title = Column(Text, nullable=True)
    content = Column(Text, nullable=True)
    transcription = Column(Text, nullable=True)
    extra_notes = Column(Text, nullable=True)
    final_doc_path = Column(Text, nullable=True)
    language = Column(String(2), nullable=False, default="en", server_default="en")
    created_at = Column(DateTime, default=datetime.datetime.utcnow, index=True)


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True)
    # no cascade; BRDs are never deleted
    brd_id = Column(String(36), ForeignKey("brds.id"), index=True, nullable=False)
    role = Column(String(16), nullable=False)   # "user" or "model"
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.datetime.utcnow)

