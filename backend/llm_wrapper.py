# backend/llm_wrapper.py
"""
Centralized LLM wrapper. Supports Gemini, OpenAI and Anthropic backends.
Returns a standardized dict:
{
  "text": "<model text>",
  "model": "<model used>",
  "response_id": "<model response id if available>",
  "raw": <raw response object>
}

Messages are {"role": "system"|"user"|"model", "content": <str or list of parts>}.
A part is either a string or a binary blob {"mime_type": "...", "data": b"..."}.
Gemini takes any blob inline; Anthropic takes PDF blobs as documents; OpenAI is
text only.

Configuration (env vars):
  LLM_PROVIDER=gemini|openai|anthropic   (default: auto-detect based on available keys)
  GEMINI_API_KEY=...
  OPENAI_API_KEY=...
  ANTHROPIC_API_KEY=...
  BRD_LLM_MODEL=...              (default: depends on provider)
  LLM_TIMEOUT=300                (seconds, passed to the provider SDK)
  MOCK_LLM=true                  (mock mode for dev/tests)

Usage:
  from backend.llm_wrapper import call_llm
  resp = call_llm(messages=..., model="gemini-2.5-flash")
  text = resp["text"]; model = resp["model"]; rid = resp["response_id"]
"""

import os
import time
import base64
from typing import Dict, Any, Optional, List, Union

MOCK_LLM = os.getenv("MOCK_LLM", "false").lower() in ("1", "true", "yes")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "").strip()
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY", "").strip()
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "").strip()
LLM_TIMEOUT = int(os.getenv("LLM_TIMEOUT", "300"))

# Auto-detect provider: explicit > gemini if key present > anthropic > openai
_explicit_provider = os.getenv("LLM_PROVIDER", "").strip().lower()
if _explicit_provider in ("gemini", "google"):
    LLM_PROVIDER = "gemini"
elif _explicit_provider in ("anthropic", "claude"):
    LLM_PROVIDER = "anthropic"
elif _explicit_provider in ("openai", "gpt"):
    LLM_PROVIDER = "openai"
elif GEMINI_API_KEY:
    LLM_PROVIDER = "gemini"
elif ANTHROPIC_API_KEY:
    LLM_PROVIDER = "anthropic"
elif OPENAI_API_KEY:
    LLM_PROVIDER = "openai"
else:
    LLM_PROVIDER = "gemini"  # the call will fail with a config error unless mocked

# Default models per provider
_GEMINI_DEFAULT = "gemini-2.5-flash"
_ANTHROPIC_DEFAULT = "claude-sonnet-4-20250514"
_OPENAI_DEFAULT = "gpt-4o-mini"

_PROVIDER_DEFAULTS = {
    "gemini": _GEMINI_DEFAULT,
    "anthropic": _ANTHROPIC_DEFAULT,
    "openai": _OPENAI_DEFAULT,
}

DEFAULT_MODEL = os.getenv("BRD_LLM_MODEL", _PROVIDER_DEFAULTS[LLM_PROVIDER])

Part = Union[str, Dict[str, Any]]


class LLMConfigError(RuntimeError):
    """Provider credentials are missing. Not recoverable by retrying."""


class LLMCallError(RuntimeError):
    """The provider call failed (network, auth, quota, rejected input)."""


def _parts(content: Union[str, List[Part]]) -> List[Part]:
    if isinstance(content, str):
        return [content]
    return list(content or [])


def _split_system(messages: List[Dict[str, Any]]):
    system_text = ""
    chat_messages = []
    for m in messages:
        if m["role"] == "system":
            system_text += "".join(p for p in _parts(m["content"]) if isinstance(p, str)) + "\n"
        else:
            chat_messages.append(m)
    return system_text.strip(), chat_messages


def _require_key(name: str, value: str) -> None:
    if not value:
        raise LLMConfigError(f"{name} is not set")


# ---------------------------------------------------------------------------
# Gemini backend
# ---------------------------------------------------------------------------
def _real_gemini_generate(messages: List[Dict[str, Any]], model: str,
                          max_tokens: int = 8192, temperature: Optional[float] = None,
                          timeout: int = 300) -> Dict[str, Any]:
    _require_key("GEMINI_API_KEY", GEMINI_API_KEY)
    import google.generativeai as genai

    genai.configure(api_key=GEMINI_API_KEY)

    system_text, chat_messages = _split_system(messages)
    contents = []
    for m in chat_messages:
        parts = []
        for p in _parts(m["content"]):
            if isinstance(p, str):
                parts.append(p)
            else:
                parts.append({"mime_type": p["mime_type"], "data": p["data"]})
        contents.append({"role": "model" if m["role"] == "model" else "user", "parts": parts})

    gen_model = genai.GenerativeModel(model, system_instruction=system_text or None)
    generation_config: Dict[str, Any] = {"max_output_tokens": max_tokens}
    if temperature is not None:
        generation_config["temperature"] = temperature

    resp = gen_model.generate_content(
        contents,
        generation_config=generation_config,
        request_options={"timeout": timeout},
    )

    # .text raises when the candidate carries no parts (blocked / empty)
    try:
        text = resp.text or ""
    except ValueError:
        text = ""
    return {"text": text, "model": model, "response_id": None, "raw": resp}


# ---------------------------------------------------------------------------
# Anthropic backend
# ---------------------------------------------------------------------------
def _anthropic_block(p: Part) -> Dict[str, Any]:
    if isinstance(p, str):
        return {"type": "text", "text": p}
    if p.get("mime_type") == "application/pdf":
        return {
            "type": "document",
            "source": {
                "type": "base64",
                "media_type": "application/pdf",
                "data": base64.b64encode(p["data"]).decode("ascii"),
            },
        }
    raise LLMCallError(f"anthropic does not accept {p.get('mime_type')} attachments")


def _real_anthropic_chat(messages: List[Dict[str, Any]], model: str,
                         max_tokens: int = 8192, temperature: Optional[float] = None,
                         timeout: int = 300) -> Dict[str, Any]:
    _require_key("ANTHROPIC_API_KEY", ANTHROPIC_API_KEY)
    from anthropic import Anthropic

    client = Anthropic(api_key=ANTHROPIC_API_KEY, timeout=timeout)

    # Anthropic uses a separate system param, not a system message in messages list
    system_text, rest = _split_system(messages)
    chat_messages = [
        {
            "role": "assistant" if m["role"] == "model" else "user",
            "content": [_anthropic_block(p) for p in _parts(m["content"])],
        }
        for m in rest
    ]

    kwargs = {
        "model": model,
        "max_tokens": max_tokens,
        "messages": chat_messages,
    }
    if temperature is not None:
        kwargs["temperature"] = temperature
    if system_text:
        kwargs["system"] = system_text

    resp = client.messages.create(**kwargs)

    text = ""
    for block in resp.content:
        if hasattr(block, "text"):
            text += block.text

    rid = getattr(resp, "id", None)
    return {"text": text, "model": model, "response_id": rid, "raw": resp}


# ---------------------------------------------------------------------------
# OpenAI backend
# ---------------------------------------------------------------------------
def _openai_text(content: Union[str, List[Part]]) -> str:
    texts = []
    for p in _parts(content):
        if not isinstance(p, str):
            raise LLMCallError(f"openai does not accept {p.get('mime_type')} attachments")
        texts.append(p)
    return "\n\n".join(texts)


def _real_openai_chat_completion(messages: List[Dict[str, Any]], model: str,
                                  max_tokens: int = 8192, temperature: Optional[float] = None,
                                  timeout: int = 300) -> Dict[str, Any]:
    _require_key("OPENAI_API_KEY", OPENAI_API_KEY)
    from openai import OpenAI
    client = OpenAI(api_key=OPENAI_API_KEY, timeout=timeout)
    role_map = {"system": "system", "user": "user", "model": "assistant"}
    kwargs = {
        "model": model,
        "messages": [{"role": role_map[m["role"]], "content": _openai_text(m["content"])} for m in messages],
        "max_tokens": max_tokens,
    }
    if temperature is not None:
        kwargs["temperature"] = temperature
    resp = client.chat.completions.create(**kwargs)
    choices = getattr(resp, "choices", [])
    text = choices[0].message.content if choices else ""
    rid = getattr(resp, "id", None)
    return {"text": text or "", "model": model, "response_id": rid, "raw": resp}


# ---------------------------------------------------------------------------
# Mock backend
# ---------------------------------------------------------------------------
def _mock_llm(messages: List[Dict[str, Any]], model: str, **kwargs) -> Dict[str, Any]:
    """
    Deterministic mock used in dev/tests. Returns the concatenation of user text parts,
    noting attached blobs, and a deterministic response_id based on time.
    """
    chunks = []
    for m in messages:
        if m["role"] != "user":
            continue
        for p in _parts(m["content"]):
            chunks.append(p if isinstance(p, str) else f"[{p.get('mime_type')} attachment]")
    text = ("\n\n").join(chunks)[:1000]  # truncated
    rid = f"mock-{model}-{int(time.time() * 1000)}"
    return {"text": text, "model": model, "response_id": rid, "raw": {"mock": True}}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def call_llm(messages: List[Dict[str, Any]], model: Optional[str] = None,
             max_tokens: int = 8192, temperature: Optional[float] = None,
             timeout: Optional[int] = None) -> Dict[str, Any]:
    """
    messages: list of {role, content}
    model: override model string
    Returns: dict with keys 'text','model','response_id','raw'
    Raises LLMConfigError for missing credentials, LLMCallError for anything else.
    """
    model = model or DEFAULT_MODEL
    timeout = timeout or LLM_TIMEOUT
    if MOCK_LLM:
        return _mock_llm(messages, model=model, max_tokens=max_tokens,
                         temperature=temperature, timeout=timeout)
    try:
        if LLM_PROVIDER == "anthropic":
            return _real_anthropic_chat(messages, model=model,
                                        max_tokens=max_tokens,
                                        temperature=temperature,
                                        timeout=timeout)
        if LLM_PROVIDER == "openai":
            return _real_openai_chat_completion(messages, model=model,
                                                max_tokens=max_tokens,
                                                temperature=temperature,
                                                timeout=timeout)
        return _real_gemini_generate(messages, model=model,
                                     max_tokens=max_tokens,
                                     temperature=temperature,
                                     timeout=timeout)
    except (LLMConfigError, LLMCallError):
        raise
    except Exception as e:
        raise LLMCallError(f"LLM call failed ({LLM_PROVIDER}): {e}") from e
