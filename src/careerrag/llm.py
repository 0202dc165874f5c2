from __future__ import annotations

from typing import Any, Dict, List, Optional

import requests

from .config import GenerationSettings
from .errors import ConfigurationError, GenerationError


class BaseLLM:
    def generate(self, *, model: str, prompt: str, temperature: float, max_tokens: int) -> str:
        raise NotImplementedError


class _HTTPChatLLM(BaseLLM):
    def __init__(self, base_url: str, timeout: float, session: Optional[requests.Session]):
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._session = session or requests.Session()

    def _post(self, model: str, path: str, payload: Dict[str, Any], headers: Optional[Dict] = None) -> Dict:
        try:
            resp = self._session.post(
                f"{self._base_url}{path}", json=payload, headers=headers, timeout=self._timeout
            )
            resp.raise_for_status()
            return resp.json()
        except (requests.RequestException, ValueError) as e:
            raise GenerationError(f"Generation call to {model} failed: {e}", models=[model]) from e


class OpenAIChatLLM(_HTTPChatLLM):
    """OpenAI /chat/completions with a single user message."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        timeout: float = 120.0,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(base_url, timeout, session)
        self._api_key = api_key

    def generate(self, *, model: str, prompt: str, temperature: float, max_tokens: int) -> str:
        payload = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        data = self._post(model, "/chat/completions", payload,
                          headers={"Authorization": f"Bearer {self._api_key}"})
        choices: List[Dict] = data.get("choices") or []
        content = ((choices[0].get("message") or {}).get("content") if choices else None) or ""
        if not content.strip():
            raise GenerationError(f"{model} returned an empty response", models=[model])
        return content


class OllamaLLM(_HTTPChatLLM):
    """
    Local Ollama server via /api/chat (non-streaming).
    Returns the final message content.
    """

    def __init__(
        self,
        *,
        base_url: str = "http://127.0.0.1:11434",
        timeout: float = 120.0,
        session: Optional[requests.Session] = None,
    ):
        super().__init__(base_url, timeout, session)

    def generate(self, *, model: str, prompt: str, temperature: float, max_tokens: int) -> str:
        payload = {
            "model": model,
            "stream": False,
            "messages": [{"role": "user", "content": prompt}],
            "options": {"temperature": temperature, "num_predict": max_tokens},
        }
        data = self._post(model, "/api/chat", payload)
        # {"message": {"role": "assistant", "content": "..."}, "done": true, ...}
        content = (data.get("message", {}) or {}).get("content", "") or ""
        if not content.strip():
            raise GenerationError(f"{model} returned an empty response", models=[model])
        return content


def make_llm(cfg: GenerationSettings) -> BaseLLM:
    if cfg.provider == "ollama":
        return OllamaLLM(base_url=cfg.ollama_url, timeout=cfg.timeout_seconds)
    if cfg.provider == "openai":
        if not cfg.api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set")
        return OpenAIChatLLM(api_key=cfg.api_key, base_url=cfg.base_url, timeout=cfg.timeout_seconds)
    raise ConfigurationError(f"Unsupported generation provider: {cfg.provider}")
