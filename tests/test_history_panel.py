# tests/test_history_panel.py
from frontend.history import HistoryPanel


class BrokenApi:
    def list_brds(self):
        raise ConnectionError("api down")


def test_refresh_reloads_full_list(api):
    panel = HistoryPanel(api)
    assert panel.refresh() == []
    a = api.create_brd(title="a", content="1", transcription="", extra_notes="", language="en")
    b = api.create_brd(title="b", content="2", transcription="", extra_notes="", language="ar")
    items = panel.refresh()
    assert [i.id for i in items] == [b, a]
    assert panel.find(a).title == "a"
    assert panel.select(b).language == "ar"
    assert panel.final_doc_url(panel.find(a)) is None


def test_failed_refresh_keeps_last_list():
    panel = HistoryPanel(BrokenApi())
    panel.items = ["kept"]
    assert panel.refresh() == ["kept"]
    assert panel.error
