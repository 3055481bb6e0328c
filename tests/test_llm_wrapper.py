# tests/test_llm_wrapper.py
import importlib
import sys
from types import SimpleNamespace

import anthropic
import pytest

import backend.llm_wrapper as llm


def test_mock_mode_echoes_user_text(monkeypatch):
    monkeypatch.setattr(llm, "MOCK_LLM", True)
    resp = llm.call_llm([
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": [{"mime_type": "audio/mpeg", "data": b"x"}, "transcribe this"]},
    ], model="test-model")
    assert resp["model"] == "test-model"
    assert "transcribe this" in resp["text"]
    assert "[audio/mpeg attachment]" in resp["text"]
    assert "be brief" not in resp["text"]
    assert resp["response_id"].startswith("mock-test-model-")


def test_missing_key_is_config_error(monkeypatch):
    monkeypatch.setattr(llm, "MOCK_LLM", False)
    monkeypatch.setattr(llm, "LLM_PROVIDER", "gemini")
    monkeypatch.setattr(llm, "GEMINI_API_KEY", "")
    with pytest.raises(llm.LLMConfigError):
        llm.call_llm([{"role": "user", "content": "hi"}])


def test_provider_failure_is_wrapped(monkeypatch):
    monkeypatch.setattr(llm, "MOCK_LLM", False)
    monkeypatch.setattr(llm, "LLM_PROVIDER", "openai")

    def broken(messages, model, **kwargs):
        raise ConnectionError("reset by peer")
    monkeypatch.setattr(llm, "_real_openai_chat_completion", broken)
    with pytest.raises(llm.LLMCallError) as exc:
        llm.call_llm([{"role": "user", "content": "hi"}], model="gpt-4o-mini")
    assert "reset by peer" in str(exc.value)


def test_openai_rejects_binary_parts():
    with pytest.raises(llm.LLMCallError):
        llm._openai_text(["text", {"mime_type": "audio/wav", "data": b"x"}])


def test_anthropic_sends_pdf_as_document():
    block = llm._anthropic_block({"mime_type": "application/pdf", "data": b"%PDF"})
    assert block["type"] == "document"
    assert block["source"]["media_type"] == "application/pdf"
    assert block["source"]["data"] == "JVBERg=="


def test_system_messages_are_split_out():
    system, rest = llm._split_system([
        {"role": "system", "content": "rules"},
        {"role": "user", "content": "q"},
        {"role": "model", "content": "a"},
    ])
    assert system == "rules"
    assert [m["role"] for m in rest] == ["user", "model"]


# ---------------------------------------------------------------------------
# provider request building (SDKs replaced with recording fakes)
# ---------------------------------------------------------------------------
class FakeGeminiResponse:
    def __init__(self, text=None, blocked=False):
        self._text = text
        self._blocked = blocked

    @property
    def text(self):
        if self._blocked:
            raise ValueError("response has no parts")
        return self._text


class FakeGenAI:
    """Stands in for the google.generativeai module and records what it receives."""

    def __init__(self, response):
        self.response = response
        self.calls = {}

    def configure(self, api_key=None):
        self.calls["api_key"] = api_key

    def GenerativeModel(self, model, system_instruction=None):
        self.calls["model"] = model
        self.calls["system_instruction"] = system_instruction
        return self

    def generate_content(self, contents, generation_config=None, request_options=None):
        self.calls["contents"] = contents
        self.calls["generation_config"] = generation_config
        self.calls["request_options"] = request_options
        return self.response


def _use_gemini(monkeypatch, response):
    fake = FakeGenAI(response)
    google_pkg = importlib.import_module("google")
    monkeypatch.setitem(sys.modules, "google.generativeai", fake)
    monkeypatch.setattr(google_pkg, "generativeai", fake, raising=False)
    monkeypatch.setattr(llm, "MOCK_LLM", False)
    monkeypatch.setattr(llm, "LLM_PROVIDER", "gemini")
    monkeypatch.setattr(llm, "GEMINI_API_KEY", "g-key")
    return fake


CONVERSATION = [
    {"role": "system", "content": "You are a BA."},
    {"role": "user", "content": [{"mime_type": "audio/mpeg", "data": b"\x01\x02"}, "transcribe"]},
    {"role": "model", "content": "Speaker 1: hi"},
    {"role": "user", "content": "thanks"},
]


def test_gemini_request_building(monkeypatch):
    fake = _use_gemini(monkeypatch, FakeGeminiResponse("done"))
    resp = llm.call_llm(CONVERSATION, model="gemini-test", max_tokens=100, timeout=7)

    assert resp["text"] == "done"
    assert resp["model"] == "gemini-test"
    assert fake.calls["api_key"] == "g-key"
    assert fake.calls["model"] == "gemini-test"
    assert fake.calls["system_instruction"] == "You are a BA."
    assert fake.calls["contents"] == [
        {"role": "user", "parts": [{"mime_type": "audio/mpeg", "data": b"\x01\x02"}, "transcribe"]},
        {"role": "model", "parts": ["Speaker 1: hi"]},
        {"role": "user", "parts": ["thanks"]},
    ]
    assert fake.calls["generation_config"] == {"max_output_tokens": 100}
    assert fake.calls["request_options"] == {"timeout": 7}


def test_gemini_blocked_candidate_is_empty_text(monkeypatch):
    _use_gemini(monkeypatch, FakeGeminiResponse(blocked=True))
    resp = llm.call_llm([{"role": "user", "content": "hi"}])
    assert resp["text"] == ""


def test_gemini_empty_answer_maps_to_gateway_fallback(monkeypatch):
    import backend.processors.gateway as gw
    from backend.processors.gateway import GatewayStatus

    _use_gemini(monkeypatch, FakeGeminiResponse(blocked=True))
    res = gw.transcribe_media(b"x", "audio/mpeg")
    assert res.status == GatewayStatus.EMPTY
    assert res.text == "No transcription generated."


def test_anthropic_request_building(monkeypatch):
    recorded = {}

    class FakeMessages:
        def create(self, **kwargs):
            recorded["create"] = kwargs
            return SimpleNamespace(id="msg_1", content=[SimpleNamespace(text="part one "),
                                                        SimpleNamespace(text="part two")])

    class FakeAnthropic:
        def __init__(self, api_key=None, timeout=None):
            recorded["client"] = {"api_key": api_key, "timeout": timeout}
            self.messages = FakeMessages()

    monkeypatch.setattr(anthropic, "Anthropic", FakeAnthropic)
    monkeypatch.setattr(llm, "MOCK_LLM", False)
    monkeypatch.setattr(llm, "LLM_PROVIDER", "anthropic")
    monkeypatch.setattr(llm, "ANTHROPIC_API_KEY", "a-key")

    resp = llm.call_llm([
        {"role": "system", "content": "Be concise."},
        {"role": "user", "content": ["summarise", {"mime_type": "application/pdf", "data": b"%PDF"}]},
        {"role": "model", "content": "ok"},
        {"role": "user", "content": "more"},
    ], model="claude-test", timeout=9)

    assert resp["text"] == "part one part two"
    assert resp["response_id"] == "msg_1"
    assert recorded["client"] == {"api_key": "a-key", "timeout": 9}
    sent = recorded["create"]
    assert sent["model"] == "claude-test"
    assert sent["system"] == "Be concise."
    assert [m["role"] for m in sent["messages"]] == ["user", "assistant", "user"]
    first = sent["messages"][0]["content"]
    assert first[0] == {"type": "text", "text": "summarise"}
    assert first[1]["type"] == "document"
    assert first[1]["source"]["data"] == "JVBERg=="
    assert sent["messages"][1]["content"] == [{"type": "text", "text": "ok"}]


def test_anthropic_rejects_audio(monkeypatch):
    monkeypatch.setattr(llm, "MOCK_LLM", False)
    monkeypatch.setattr(llm, "LLM_PROVIDER", "anthropic")
    monkeypatch.setattr(llm, "ANTHROPIC_API_KEY", "a-key")
    monkeypatch.setattr(anthropic, "Anthropic", lambda **kw: SimpleNamespace(messages=None))
    with pytest.raises(llm.LLMCallError):
        llm.call_llm([{"role": "user", "content": [{"mime_type": "audio/mpeg", "data": b"x"}]}])
