# frontend/api_client.py
import os
from typing import Any, Dict, List, Optional

import requests
from dotenv import load_dotenv

load_dotenv()
API_BASE = os.getenv("API_BASE", "http://localhost:3000")

REQUEST_TIMEOUT = (5, 120)  # (connect, read) seconds


class BRDApiClient:
    """
    Thin client for the BRD REST API.

    `http` is anything with requests-style get/post/put (a requests.Session,
    or a FastAPI TestClient in tests). Non-2xx responses raise via raise_for_status().
    """

    def __init__(self, base_url: str = API_BASE, http=None, timeout=REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.http = http or requests.Session()
        self.timeout = timeout

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _send(self, method: str, path: str, **kwargs):
        if self.timeout is not None:
            kwargs["timeout"] = self.timeout
        r = getattr(self.http, method)(self._url(path), **kwargs)
        r.raise_for_status()
        return r.json()

    # ---------- BRDs ----------
    def list_brds(self) -> List[Dict[str, Any]]:
        return self._send("get", "/api/brds")

    def get_brd(self, brd_id: str) -> Dict[str, Any]:
        return self._send("get", f"/api/brds/{brd_id}")

    def create_brd(self, title: str, content: str, transcription: str,
                   extra_notes: str, language: str) -> str:
        body = {
            "title": title,
            "content": content,
            "transcription": transcription,
            "extraNotes": extra_notes,
            "language": language,
        }
        return self._send("post", "/api/brds", json=body)["id"]

    def update_brd_content(self, brd_id: str, content: str) -> str:
        return self._send("put", f"/api/brds/{brd_id}", json={"content": content})["id"]

    def upload_final(self, brd_id: str, filename: str, data: bytes,
                     mime_type: Optional[str] = None) -> str:
        files = {"file": (filename, data, mime_type or "application/octet-stream")}
        return self._send("post", f"/api/brds/{brd_id}/final", files=files)["path"]

    def final_doc_url(self, path: str) -> str:
        # the server stores paths under its upload dir, served at /uploads
        return self._url(f"/uploads/{os.path.basename(path)}")

    # ---------- Chat ----------
    def list_chat(self, brd_id: str) -> List[Dict[str, Any]]:
        return self._send("get", f"/api/brds/{brd_id}/chat")

    def append_chat(self, brd_id: str, role: str, content: str) -> str:
        return self._send("post", f"/api/brds/{brd_id}/chat", json={"role": role, "content": content})["id"]
