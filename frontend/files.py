# frontend/files.py
"""
Client-side handling of user files before they reach the AI gateway.

Source media is passed through as raw bytes; sample documents are reduced to
plain text where possible (DOCX via python-docx, text files decoded as UTF-8)
and PDFs are kept as binary so the model reads them directly.
"""
import io
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional

from docx import Document as Docx

from backend.processors.gateway import SampleAttachment, PDF_MIME

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
TEXT_MIME = "text/plain"
DEFAULT_TITLE = "Untitled BRD"

TRANSCRIPTION_HEADER = "### Transcription for: {name}\n\n{text}"
TRANSCRIPTION_SEPARATOR = "\n\n---\n\n"


@dataclass
class MediaFile:
    name: str
    mime_type: str
    data: bytes


@dataclass
class SampleFile:
    name: str
    mime_type: str
    data: bytes


def from_upload(uploaded, cls=MediaFile):
    """Wrap a Streamlit UploadedFile (or anything with name/type/getvalue)."""
    return cls(name=uploaded.name, mime_type=uploaded.type or "", data=uploaded.getvalue())


def is_media(mime_type: str) -> bool:
    mime_type = mime_type or ""
    return mime_type.startswith("audio/") or mime_type.startswith("video/")


def only_media(files: Iterable[MediaFile]) -> List[MediaFile]:
    return [f for f in files if is_media(f.mime_type)]


def derive_title(files: List[MediaFile]) -> str:
    """First file's name without its extension, or the default title."""
    if not files:
        return DEFAULT_TITLE
    stem, _ext = os.path.splitext(files[0].name)
    return stem or DEFAULT_TITLE


def join_transcriptions(names: List[str], texts: List[str]) -> str:
    sections = [TRANSCRIPTION_HEADER.format(name=n, text=t) for n, t in zip(names, texts)]
    return TRANSCRIPTION_SEPARATOR.join(sections)


def extract_docx_text(data: bytes) -> str:
    doc = Docx(io.BytesIO(data))
    return "\n".join(p.text for p in doc.paragraphs)


def parse_sample(f: SampleFile) -> Optional[SampleAttachment]:
    """
    Turn a sample document into something the generator can attach.
    Plain-text samples are always kept; any other type returns None when it is
    not valid UTF-8 (it is then skipped).
    Raises on a corrupt DOCX; the caller drops those too.
    """
    if f.mime_type == PDF_MIME:
        return SampleAttachment(name=f.name, mime_type=f.mime_type, data=f.data)
    if f.mime_type == DOCX_MIME:
        return SampleAttachment(name=f.name, mime_type=f.mime_type, text=extract_docx_text(f.data))
    if f.mime_type == TEXT_MIME or f.name.lower().endswith(".txt"):
        # declared text is always kept; bad bytes become U+FFFD
        text = f.data.decode("utf-8", errors="replace")
        return SampleAttachment(name=f.name, mime_type=TEXT_MIME, text=text)
    try:
        text = f.data.decode("utf-8")
    except UnicodeDecodeError:
        return None
    return SampleAttachment(name=f.name, mime_type=f.mime_type or TEXT_MIME, text=text)
