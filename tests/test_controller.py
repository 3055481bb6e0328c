# tests/test_controller.py
"""
Wizard transitions and the pipeline controller, run against the real API
in-process with the AI gateway monkeypatched.
"""
import threading
import time

import pytest

import backend.processors.gateway as _gateway
from backend.llm_wrapper import LLMConfigError
from backend.processors.gateway import GatewayResult, GatewayStatus
from frontend.controller import (
    ERRORS,
    InvalidTransition,
    PipelineController,
    WizardAction,
    WizardStep,
    next_step,
)
from frontend.files import MediaFile, SampleFile


def ok(text):
    return GatewayResult(GatewayStatus.OK, text)


def upstream_error():
    return GatewayResult(GatewayStatus.UPSTREAM_ERROR, "", error="503")


@pytest.fixture
def ctrl(api):
    return PipelineController(api)


def _media(*names):
    return [MediaFile(n, "audio/mpeg", n.encode()) for n in names]


def _ready_for_setup(ctrl, monkeypatch):
    monkeypatch.setattr(_gateway, "transcribe_media", lambda data, mime, lang: ok(f"said {data.decode()}"))
    ctrl.add_files(_media("kickoff.mp3"))
    assert ctrl.transcribe()
    ctrl.proceed_to_setup()


# ---------------------------------------------------------------------------
# transition table
# ---------------------------------------------------------------------------
@pytest.mark.parametrize("step,action,expected", [
    (WizardStep.TRANSCRIBE, WizardAction.PROCEED, WizardStep.BRD_SETUP),
    (WizardStep.BRD_SETUP, WizardAction.GENERATED, WizardStep.BRD_RESULT),
    (WizardStep.BRD_SETUP, WizardAction.BACK_TO_TRANSCRIBE, WizardStep.TRANSCRIBE),
    (WizardStep.BRD_RESULT, WizardAction.BACK_TO_SETUP, WizardStep.BRD_SETUP),
    (WizardStep.BRD_RESULT, WizardAction.BACK_TO_TRANSCRIBE, WizardStep.TRANSCRIBE),
    (WizardStep.BRD_SETUP, WizardAction.RESET, WizardStep.TRANSCRIBE),
    (WizardStep.TRANSCRIBE, WizardAction.RESUME, WizardStep.BRD_RESULT),
])
def test_legal_transitions(step, action, expected):
    assert next_step(step, action) == expected


@pytest.mark.parametrize("step,action", [
    (WizardStep.TRANSCRIBE, WizardAction.GENERATED),
    (WizardStep.TRANSCRIBE, WizardAction.BACK_TO_SETUP),
    (WizardStep.BRD_SETUP, WizardAction.PROCEED),
    (WizardStep.BRD_SETUP, WizardAction.BACK_TO_SETUP),
    (WizardStep.BRD_RESULT, WizardAction.PROCEED),
    (WizardStep.BRD_RESULT, WizardAction.GENERATED),
])
def test_illegal_transitions_raise(step, action):
    with pytest.raises(InvalidTransition):
        next_step(step, action)


# ---------------------------------------------------------------------------
# transcribe
# ---------------------------------------------------------------------------
def test_add_files_ignores_non_media(ctrl):
    added = ctrl.add_files([
        MediaFile("a.mp3", "audio/mpeg", b""),
        MediaFile("notes.pdf", "application/pdf", b""),
    ])
    assert added == 1
    assert [f.name for f in ctrl.state.files] == ["a.mp3"]


def test_transcriptions_join_in_file_order_regardless_of_completion(ctrl, monkeypatch):
    delays = {b"first.mp3": 0.3, b"second.mp3": 0.15, b"third.mp3": 0.0}
    finished = []
    lock = threading.Lock()

    def slow_transcribe(data, mime_type, language):
        time.sleep(delays[data])
        with lock:
            finished.append(data)
        return ok(f"text of {data.decode()}")

    monkeypatch.setattr(_gateway, "transcribe_media", slow_transcribe)
    ctrl.add_files(_media("first.mp3", "second.mp3", "third.mp3"))
    assert ctrl.transcribe()

    assert finished[0] == b"third.mp3"
    assert ctrl.state.transcription == (
        "### Transcription for: first.mp3\n\ntext of first.mp3\n\n---\n\n"
        "### Transcription for: second.mp3\n\ntext of second.mp3\n\n---\n\n"
        "### Transcription for: third.mp3\n\ntext of third.mp3"
    )
    assert ctrl.state.error is None
    assert not ctrl.state.is_processing


def test_one_failed_file_fails_the_batch(ctrl, monkeypatch):
    def flaky(data, mime_type, language):
        return upstream_error() if data == b"b.mp3" else ok("fine")

    monkeypatch.setattr(_gateway, "transcribe_media", flaky)
    ctrl.add_files(_media("a.mp3", "b.mp3"))
    assert ctrl.transcribe() is False
    assert ctrl.state.transcription is None
    assert ctrl.state.error == ERRORS["transcribe"]["en"]
    with pytest.raises(InvalidTransition):
        ctrl.proceed_to_setup()


def test_failure_message_follows_language(ctrl, monkeypatch):
    monkeypatch.setattr(_gateway, "transcribe_media", lambda *a: upstream_error())
    ctrl.set_language("ar")
    ctrl.add_files(_media("a.mp3"))
    ctrl.transcribe()
    assert ctrl.state.error == ERRORS["transcribe"]["ar"]


def test_config_error_is_not_swallowed(ctrl, monkeypatch):
    def no_key(*a):
        raise LLMConfigError("GEMINI_API_KEY is not set")
    monkeypatch.setattr(_gateway, "transcribe_media", no_key)
    ctrl.add_files(_media("a.mp3"))
    with pytest.raises(LLMConfigError):
        ctrl.transcribe()
    assert not ctrl.state.is_processing


def test_set_language_rejects_unknown(ctrl):
    with pytest.raises(ValueError):
        ctrl.set_language("fr")


# ---------------------------------------------------------------------------
# generate
# ---------------------------------------------------------------------------
def test_generate_persists_binds_and_refreshes(ctrl, api, monkeypatch):
    _ready_for_setup(ctrl, monkeypatch)
    seen = {}

    def fake_generate(transcription, notes, samples, language):
        seen["samples"] = samples
        seen["notes"] = notes
        return ok("# Kickoff BRD")

    monkeypatch.setattr(_gateway, "generate_brd", fake_generate)
    ctrl.set_notes("only phase 1")
    ctrl.add_samples([
        SampleFile("style.txt", "text/plain", b"Use tables"),
        SampleFile("broken.docx", "application/vnd.openxmlformats-officedocument.wordprocessingml.document", b"junk"),
        SampleFile("blob.bin", "application/octet-stream", b"\xff\xfe"),
    ])

    assert ctrl.generate()
    s = ctrl.state
    assert s.step == WizardStep.BRD_RESULT
    assert s.brd_content == "# Kickoff BRD"
    assert s.title == "kickoff"
    assert [a.name for a in seen["samples"]] == ["style.txt"]
    assert seen["notes"] == "only phase 1"

    stored = api.get_brd(s.brd_id)
    assert stored["title"] == "kickoff"
    assert stored["content"] == "# Kickoff BRD"
    assert stored["transcription"] == s.transcription
    assert stored["extra_notes"] == "only phase 1"
    assert [item.id for item in ctrl.history.items] == [s.brd_id]


def test_generate_upstream_error_stays_in_setup(ctrl, api, monkeypatch):
    _ready_for_setup(ctrl, monkeypatch)
    monkeypatch.setattr(_gateway, "generate_brd", lambda *a: upstream_error())
    assert ctrl.generate() is False
    assert ctrl.state.step == WizardStep.BRD_SETUP
    assert ctrl.state.error == ERRORS["generate"]["en"]
    assert ctrl.state.brd_id is None
    assert api.list_brds() == []


# ---------------------------------------------------------------------------
# result step
# ---------------------------------------------------------------------------
def test_refine_persists_when_bound(ctrl, api, monkeypatch):
    _ready_for_setup(ctrl, monkeypatch)
    monkeypatch.setattr(_gateway, "generate_brd", lambda *a: ok("# v1"))
    ctrl.generate()

    commands = []

    def fake_refine(content, command, language):
        commands.append((content, command))
        return ok("# v2")

    monkeypatch.setattr(_gateway, "refine_brd", fake_refine)
    assert ctrl.refine("  add a risks section  ")
    assert commands == [("# v1", "add a risks section")]
    assert ctrl.state.brd_content == "# v2"
    assert api.get_brd(ctrl.state.brd_id)["content"] == "# v2"
    assert ctrl.history.items[0].content == "# v2"


def test_refine_ignores_blank_command(ctrl, monkeypatch):
    ctrl.state.brd_content = "# v1"
    called = []
    monkeypatch.setattr(_gateway, "refine_brd", lambda *a: called.append(a))
    assert ctrl.refine("   ") is False
    assert called == []


def test_refine_failure_keeps_content(ctrl, monkeypatch):
    ctrl.state.brd_content = "# v1"
    monkeypatch.setattr(_gateway, "refine_brd", lambda *a: upstream_error())
    assert ctrl.refine("shorter") is False
    assert ctrl.state.brd_content == "# v1"
    assert ctrl.state.error == ERRORS["refine"]["en"]


def test_save_edit_persists(ctrl, api, monkeypatch):
    _ready_for_setup(ctrl, monkeypatch)
    monkeypatch.setattr(_gateway, "generate_brd", lambda *a: ok("# v1"))
    ctrl.generate()
    assert ctrl.save_edit("# hand edited")
    assert api.get_brd(ctrl.state.brd_id)["content"] == "# hand edited"


def test_upload_final_links_document(ctrl, monkeypatch):
    _ready_for_setup(ctrl, monkeypatch)
    monkeypatch.setattr(_gateway, "generate_brd", lambda *a: ok("# v1"))
    ctrl.generate()
    path = ctrl.upload_final("approved.pdf", b"%PDF", "application/pdf")
    assert path
    url = ctrl.final_doc_url()
    assert url.startswith("http://testserver/uploads/")
    assert url.endswith("-approved.pdf")


def test_upload_final_failure_sets_message(ctrl):
    ctrl.state.brd_id = "not-stored"
    assert ctrl.upload_final("a.pdf", b"x") is None
    assert ctrl.state.error == ERRORS["final_upload"]["en"]


def test_exports(ctrl):
    ctrl.state.brd_content = "# BRD"
    ctrl.state.transcription = "hello"
    assert ctrl.export_markdown() == ("Business_Requirements_Document.md", b"# BRD")
    assert ctrl.export_transcription() == ("transcription.txt", b"hello")


def test_back_navigation(ctrl, monkeypatch):
    _ready_for_setup(ctrl, monkeypatch)
    monkeypatch.setattr(_gateway, "generate_brd", lambda *a: ok("# v1"))
    ctrl.generate()
    assert ctrl.back_to_setup() == WizardStep.BRD_SETUP
    assert ctrl.back_to_transcribe() == WizardStep.TRANSCRIBE
    with pytest.raises(InvalidTransition):
        ctrl.back_to_setup()


# ---------------------------------------------------------------------------
# reset / resume
# ---------------------------------------------------------------------------
def test_reset_clears_everything_but_language(ctrl, monkeypatch):
    _ready_for_setup(ctrl, monkeypatch)
    ctrl.set_language("ar")
    ctrl.set_notes("n")
    assert ctrl.reset() == WizardStep.TRANSCRIBE
    s = ctrl.state
    assert s.files == [] and s.transcription is None and s.extra_notes == ""
    assert s.brd_id is None and s.brd_content is None
    assert s.language == "ar"


def test_resume_replaces_state_with_no_residue(ctrl, api, monkeypatch):
    other_id = api.create_brd(title="earlier", content="# Earlier BRD", transcription="old words",
                              extra_notes="", language="ar")
    ctrl.history.refresh()

    # an unrelated session in progress
    _ready_for_setup(ctrl, monkeypatch)
    ctrl.set_notes("current notes")
    ctrl.add_samples([SampleFile("s.txt", "text/plain", b"x")])
    ctrl.state.error = "something went wrong"

    assert ctrl.resume(other_id) == WizardStep.BRD_RESULT
    s = ctrl.state
    assert s.brd_id == other_id
    assert s.brd_content == "# Earlier BRD"
    assert s.transcription == "old words"
    assert s.language == "ar"
    assert s.title == "earlier"
    assert s.files == []
    assert s.sample_files == []
    assert s.extra_notes == ""
    assert s.error is None
    assert not s.show_chat


def test_resume_fetches_when_not_cached(ctrl, api):
    brd_id = api.create_brd(title="t", content="c", transcription="x", extra_notes="e", language="en")
    ctrl.resume(brd_id)
    assert ctrl.state.brd_content == "c"
    assert ctrl.state.extra_notes == "e"
