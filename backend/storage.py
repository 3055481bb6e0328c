# backend/storage.py
"""
On-disk storage for approved ("final") BRD documents.

Files land in UPLOAD_DIR as `<epoch-millis>-<original name>` so repeated
uploads of the same name never collide. The same directory is served
read-only under /uploads by the API.
"""
import os
import time
from typing import BinaryIO

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "./uploads")

_DEFAULT_NAME = "upload.bin"


def ensure_upload_dir() -> str:
    os.makedirs(UPLOAD_DIR, exist_ok=True)
    return UPLOAD_DIR


def stored_filename(original_name: str, now_ms: int = None) -> str:
    # keep only the base name; clients may send paths
    base = os.path.basename((original_name or "").replace("\\", "/")) or _DEFAULT_NAME
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{now_ms}-{base}"


def save_upload(original_name: str, stream: BinaryIO) -> str:
    """Copy an uploaded stream into UPLOAD_DIR and return the stored path."""
    directory = ensure_upload_dir()
    path = os.path.join(directory, stored_filename(original_name))
    try:
        with open(path, "wb") as out:
            while True:
                chunk = stream.read(1024 * 1024)
                if not chunk:
                    break
                out.write(chunk)
    except Exception:
        # no partial file left behind
        discard(path)
        raise
    return path


def discard(path: str) -> None:
    try:
        os.remove(path)
    except FileNotFoundError:
        pass
