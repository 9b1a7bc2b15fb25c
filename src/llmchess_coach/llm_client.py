from __future__ import annotations
"""
LLM client facade over an OpenAI-compatible chat-completions endpoint (configurable base URL).

The rest of the code should not care which SDK is in use. This module sends
`model` + `messages` and returns the raw reply text, raising AdvisorError on any
failure. One attempt per call; timeouts are the transport defaults.
"""
from typing import Optional, List, Dict
import logging

from openai import AsyncOpenAI, OpenAIError

from .config import SETTINGS
from .errors import AdvisorError

log = logging.getLogger("llm_client")

if not SETTINGS.llm_api_key:
    log.warning("LLM API key not found. Set LLMCHESS_COACH_API_KEY (or OPENAI_API_KEY) to enable advice.")

_CLIENT: AsyncOpenAI | None = None


def _client() -> AsyncOpenAI:
    global _CLIENT
    if not SETTINGS.llm_api_key:
        raise AdvisorError("No API key configured. Set LLMCHESS_COACH_API_KEY in the environment or settings.yml.")
    if _CLIENT is None:
        _CLIENT = AsyncOpenAI(api_key=SETTINGS.llm_api_key, base_url=SETTINGS.api_base or None)
    return _CLIENT


# ------------------------- Chat wrapper -------------------------
async def ask_conversation(messages: List[Dict[str, str]], model: Optional[str] = None) -> str:
    """Send a chat-style conversation (including system message) and return the reply text."""
    model = model or SETTINGS.model
    if not model:
        raise AdvisorError("Model is required; set LLMCHESS_COACH_MODEL.")
    client = _client()
    try:
        rsp = await client.chat.completions.create(model=model, messages=messages)
    except OpenAIError as exc:
        log.exception("Chat request failed (model=%s)", model)
        raise AdvisorError(str(exc) or exc.__class__.__name__) from exc
    text = _extract_text(rsp)
    if not text:
        raise AdvisorError("The model returned an empty response.")
    return text.strip()


def _extract_text(rsp) -> str:
    if not getattr(rsp, "choices", None):
        return ""
    msg = rsp.choices[0].message
    content = getattr(msg, "content", None)
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for c in content:
            if isinstance(c, dict):
                if c.get("type") == "text" and isinstance(c.get("text"), str):
                    parts.append(c["text"])
                continue
            t = getattr(c, "text", None)
            if isinstance(t, str):
                parts.append(t)
        return "\n".join(parts)
    return ""
