# backend/processors/gateway.py
"""
AI gateway for the BRD workflow: transcription, generation, refinement and chat.

Every call returns a GatewayResult so callers can tell apart:
- ok:             the model produced text
- empty:          the call succeeded but produced nothing; `text` holds the fallback
- upstream_error: the provider failed (network/auth/quota); `error` holds the message

Missing credentials are not folded into a result: LLMConfigError propagates.
There is no retry; a failed call is reported once and left to the caller.
"""
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence

# Import modules (not bare functions) so monkeypatching in tests works correctly
import backend.llm_wrapper as _llm
from backend import monitoring
from backend.processors import prompts

BRD_LLM_MODEL = os.getenv("BRD_LLM_MODEL", _llm.DEFAULT_MODEL)

PDF_MIME = "application/pdf"


class GatewayStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    UPSTREAM_ERROR = "upstream_error"


@dataclass
class GatewayResult:
    status: GatewayStatus
    text: str
    error: Optional[str] = None
    model: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == GatewayStatus.UPSTREAM_ERROR


@dataclass
class SampleAttachment:
    """A reference document: extracted `text`, or raw `data` for PDFs."""
    name: str
    mime_type: str
    text: Optional[str] = None
    data: Optional[bytes] = None


def _invoke(operation: str, messages: List[Dict[str, Any]], fallback: str) -> GatewayResult:
    start = time.time()
    try:
        resp = _llm.call_llm(messages, model=BRD_LLM_MODEL)
    except _llm.LLMConfigError:
        monitoring.observe_llm_call(start, operation, "config_error")
        raise
    except _llm.LLMCallError as e:
        monitoring.observe_llm_call(start, operation, "upstream_error")
        monitoring.logger.exception("AI gateway call failed", extra={"operation": operation})
        return GatewayResult(GatewayStatus.UPSTREAM_ERROR, "", error=str(e), model=BRD_LLM_MODEL)

    text = resp.get("text") or ""
    if not text.strip():
        monitoring.observe_llm_call(start, operation, "empty")
        monitoring.logger.warning("AI gateway returned no text", extra={"operation": operation})
        return GatewayResult(GatewayStatus.EMPTY, fallback, model=resp.get("model"))

    monitoring.observe_llm_call(start, operation, "ok")
    return GatewayResult(GatewayStatus.OK, text, model=resp.get("model"))


def transcribe_media(data: bytes, mime_type: str, language: str = "en") -> GatewayResult:
    messages = [{
        "role": "user",
        "content": [
            {"mime_type": mime_type, "data": data},
            prompts.for_language(prompts.TRANSCRIBE_PROMPT, language),
        ],
    }]
    return _invoke("transcribe", messages, prompts.TRANSCRIBE_FALLBACK)


def build_generate_parts(transcription: str, notes: str,
                         samples: Sequence[SampleAttachment], language: str = "en") -> List[Any]:
    """Prompt parts for BRD generation: instruction + context first, then one part per usable sample."""
    parts: List[Any] = [
        prompts.GENERATE_CONTEXT_TEMPLATE.format(
            instruction=prompts.for_language(prompts.GENERATE_SYSTEM_PROMPT, language),
            transcription=transcription or "",
            notes=notes or "",
        )
    ]
    for s in samples:
        if s.text:
            parts.append(prompts.SAMPLE_TEXT_TEMPLATE.format(name=s.name, text=s.text))
        elif s.data and s.mime_type == PDF_MIME:
            parts.append({"mime_type": s.mime_type, "data": s.data})
    return parts


def generate_brd(transcription: str, notes: str, samples: Sequence[SampleAttachment],
                 language: str = "en") -> GatewayResult:
    messages = [{"role": "user", "content": build_generate_parts(transcription, notes, samples, language)}]
    return _invoke("generate", messages, prompts.GENERATE_FALLBACK)


def refine_brd(current_content: str, command: str, language: str = "en") -> GatewayResult:
    """Rewrite the whole BRD per `command`. An empty answer leaves the content as it was."""
    messages = [
        {"role": "system", "content": prompts.for_language(prompts.REFINE_SYSTEM_PROMPT, language)},
        {"role": "user", "content": prompts.REFINE_USER_TEMPLATE.format(content=current_content, command=command)},
    ]
    return _invoke("refine", messages, current_content)


def build_chat_messages(brd_content: str, history: Sequence[Dict[str, str]], message: str,
                        language: str = "en") -> List[Dict[str, Any]]:
    """System instruction, grounding turn, every prior turn in order, then the new message."""
    messages: List[Dict[str, Any]] = [
        {"role": "system", "content": prompts.for_language(prompts.CHAT_SYSTEM_PROMPT, language)},
        {"role": "user", "content": prompts.CHAT_CONTEXT_TEMPLATE.format(content=brd_content or "")},
    ]
    for m in history:
        messages.append({"role": m["role"], "content": m["content"]})
    messages.append({"role": "user", "content": message})
    return messages


def chat_reply(brd_content: str, history: Sequence[Dict[str, str]], message: str,
               language: str = "en") -> GatewayResult:
    return _invoke("chat", build_chat_messages(brd_content, history, message, language), prompts.CHAT_FALLBACK)
