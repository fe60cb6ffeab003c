"""Chat-completions client used for contextualization and query expansion."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests
from pydantic import BaseModel

logger = logging.getLogger(__name__)


class LLMResponse(BaseModel):
    content: Optional[str] = None
    finish_reason: str
    usage: Optional[Dict[str, int]] = None
    time_taken: float
    error: Optional[str] = None


@dataclass
class LLMConfig:
    api_base: str = "https://openrouter.ai/api/v1"
    model: str = "openai/gpt-4o-mini"
    timeout: int = 30


class TextGenerator:
    """Port for single-prompt text generation. Implementations never raise."""

    def generate(self, prompt: str, max_tokens: int, temperature: float) -> LLMResponse:
        raise NotImplementedError


def _parse_completion(data: Dict[str, Any], started: float) -> LLMResponse:
    choices = data.get("choices") or []
    if not choices:
        raise ValueError(f"Unexpected response format: {data}")

    choice = choices[0]
    usage = data.get("usage") or {}
    return LLMResponse(
        content=(choice.get("message", {}).get("content") or "").strip(),
        finish_reason=choice.get("finish_reason") or "stop",
        usage={k: int(usage.get(k, 0)) for k in ("prompt_tokens", "completion_tokens", "total_tokens")},
        time_taken=time.time() - started,
    )


class OpenAICompatibleClient(TextGenerator):
    """``TextGenerator`` over any OpenAI-compatible ``/chat/completions`` endpoint.

    Transport and format errors are returned in ``LLMResponse.error``.
    """

    def __init__(self, config: Optional[LLMConfig] = None, api_key: Optional[str] = None):
        self.config = config or LLMConfig()
        self.url = f"{self.config.api_base.rstrip('/')}/chat/completions"
        self.headers = {"Content-Type": "application/json"}
        key = api_key or os.getenv("LLM_API_KEY")
        if key:
            self.headers["Authorization"] = f"Bearer {key}"

    def generate(self, prompt: str, max_tokens: int, temperature: float) -> LLMResponse:
        payload = {
            "model": self.config.model,
            "messages": [{"role": "user", "content": prompt.strip()}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        started = time.time()
        try:
            response = requests.post(self.url, headers=self.headers, json=payload, timeout=self.config.timeout)
            response.raise_for_status()
            return _parse_completion(response.json(), started)
        except Exception as e:
            logger.debug(f"Completion request to {self.url} failed: {e}")
            return LLMResponse(finish_reason="error", time_taken=time.time() - started, error=str(e))


def make_text_generator(cfg: Dict) -> Optional[TextGenerator]:
    """Build the configured generator, or ``None`` when no LLM endpoint is set."""
    llm_cfg = cfg.get("llm", {})
    if not llm_cfg.get("api_base"):
        return None
    return OpenAICompatibleClient(LLMConfig(
        api_base=llm_cfg["api_base"],
        model=llm_cfg.get("model", LLMConfig.model),
        timeout=int(llm_cfg.get("timeout", LLMConfig.timeout)),
    ))
