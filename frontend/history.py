# frontend/history.py
from typing import List, Optional

from backend import monitoring
from backend.schemas import BRDRecord


class HistoryPanel:
    """Cached list of stored BRDs. Always reloaded in full, never patched."""

    def __init__(self, api):
        self.api = api
        self.items: List[BRDRecord] = []
        self.error: Optional[str] = None

    def refresh(self) -> List[BRDRecord]:
        try:
            rows = self.api.list_brds()
        except Exception:
            # history is a side panel; a failed reload keeps the last list
            monitoring.logger.exception("Failed to fetch history")
            self.error = "Failed to load history."
            return self.items
        self.items = [BRDRecord.model_validate(r) for r in rows]
        self.error = None
        return self.items

    def find(self, brd_id: str) -> Optional[BRDRecord]:
        for item in self.items:
            if item.id == brd_id:
                return item
        return None

    def select(self, brd_id: str) -> BRDRecord:
        """The stored record for `brd_id`, from the cache or fetched from the API."""
        item = self.find(brd_id)
        if item is not None:
            return item
        return BRDRecord.model_validate(self.api.get_brd(brd_id))

    def final_doc_url(self, record: BRDRecord) -> Optional[str]:
        if not record.final_doc_path:
            return None
        return self.api.final_doc_url(record.final_doc_path)
