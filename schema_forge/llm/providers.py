"""
LLM provider implementations.

Every provider exposes the same capability, ``generate(prompt, model_name,
api_key)``, and differs only in endpoint, authentication, request envelope
and response envelope. The set of providers is fixed: see ``PROVIDERS``.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from enum import Enum
from typing import Any, Dict, List, Optional

import requests

from ..errors import (
    AuthError,
    Malformed,
    ProviderNotConfigured,
    ProviderRequestError,
    RateLimited,
    Transient,
)

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60
DEFAULT_MAX_TOKENS = 4096
SQL_TEMPERATURE = 0.3


class ProviderKind(Enum):
    """Known LLM providers"""
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GROQ = "groq"
    COHERE = "cohere"
    XAI = "xai"
    MINIMAX = "minimax"
    QWEN = "qwen"
    ZAI = "zai"

    @classmethod
    def parse(cls, name: str) -> "ProviderKind":
        key = (name or "").strip().lower()
        key = {"z.ai": "zai", "x.ai": "xai", "claude": "anthropic"}.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ProviderNotConfigured(name) from None


def _retry_after(response: requests.Response) -> Optional[float]:
    value = response.headers.get("Retry-After")
    if not value:
        return None
    try:
        return max(0.0, float(value))
    except ValueError:
        return None


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or response.reason or "").strip()[:500]

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str):
            return error
        for key in ("message", "detail"):
            if body.get(key):
                return str(body[key])
        base_resp = body.get("base_resp")
        if isinstance(base_resp, dict) and base_resp.get("status_msg"):
            return str(base_resp["status_msg"])
    return json.dumps(body)[:500]


class LLMProvider(ABC):
    """Base class for HTTP-backed LLM providers"""

    kind: ProviderKind
    display_name: str = ""
    endpoint: str = ""
    default_model: str = ""

    def __init__(self, session: Optional[requests.Session] = None, timeout: float = DEFAULT_TIMEOUT,
                 max_tokens: int = DEFAULT_MAX_TOKENS, temperature: float = SQL_TEMPERATURE):
        self._owns_session = session is None
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.temperature = temperature

    def generate(self, prompt: str, model_name: Optional[str], api_key: Optional[str],
                 system: Optional[str] = None) -> str:
        """Send one prompt and return the generated text"""
        if not api_key:
            raise AuthError(self.display_name, "API key is missing")

        model = model_name or self.default_model
        payload = self.build_payload(prompt, model, system)
        headers = self.build_headers(api_key)

        start_time = time.time()
        response = self._post(headers, payload)
        self._raise_for_status(response)

        try:
            data = response.json()
        except ValueError as e:
            raise Malformed(self.display_name, f"Response is not JSON: {e}", response.status_code) from e

        try:
            text = self.parse_response(data)
        except (KeyError, IndexError, TypeError, AttributeError) as e:
            raise Malformed(self.display_name, f"Unexpected response shape: {e!r}", response.status_code) from e

        if not isinstance(text, str) or not text.strip():
            raise Malformed(self.display_name, "Response contained no text", response.status_code)

        logger.info(f"{self.display_name} ({model}) answered in {time.time() - start_time:.2f}s")
        return text

    def close(self) -> None:
        """Release the HTTP connection pool if this provider created it"""
        if self._owns_session:
            self.session.close()

    def _post(self, headers: Dict[str, str], payload: Dict[str, Any]) -> requests.Response:
        try:
            return self.session.post(self.endpoint, json=payload, headers=headers, timeout=self.timeout)
        except (requests.Timeout, requests.ConnectionError) as e:
            raise Transient(self.display_name, f"Request failed: {e}") from e
        except requests.RequestException as e:
            raise ProviderRequestError(self.display_name, f"Request failed: {e}") from e

    def _raise_for_status(self, response: requests.Response) -> None:
        status = response.status_code
        if status < 400:
            return

        message = _error_message(response)
        if status in (401, 403):
            raise AuthError(self.display_name, message or "authentication failed", status)
        if status == 429:
            raise RateLimited(self.display_name, message or "rate limit exceeded", status,
                              retry_after=_retry_after(response))
        if status == 408 or status >= 500:
            raise Transient(self.display_name, message or "server error", status)
        raise ProviderRequestError(self.display_name, message or "request rejected", status)

    def build_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {api_key}",
        }

    @abstractmethod
    def build_payload(self, prompt: str, model: str, system: Optional[str]) -> Dict[str, Any]:
        pass

    @abstractmethod
    def parse_response(self, data: Dict[str, Any]) -> str:
        pass


class ChatCompletionsProvider(LLMProvider):
    """Providers speaking the OpenAI chat-completions dialect"""

    def _messages(self, prompt: str, system: Optional[str]) -> List[Dict[str, str]]:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})
        return messages

    def build_payload(self, prompt: str, model: str, system: Optional[str]) -> Dict[str, Any]:
        return {
            "model": model,
            "messages": self._messages(prompt, system),
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "stream": False,
        }

    def parse_response(self, data: Dict[str, Any]) -> str:
        return data["choices"][0]["message"]["content"]


class OpenAIProvider(ChatCompletionsProvider):
    kind = ProviderKind.OPENAI
    display_name = "OpenAI"
    endpoint = "https://api.openai.com/v1/chat/completions"
    default_model = "gpt-4o"


class GroqProvider(ChatCompletionsProvider):
    kind = ProviderKind.GROQ
    display_name = "Groq"
    endpoint = "https://api.groq.com/openai/v1/chat/completions"
    default_model = "llama-3.3-70b-versatile"


class XAIProvider(ChatCompletionsProvider):
    kind = ProviderKind.XAI
    display_name = "xAI"
    endpoint = "https://api.x.ai/v1/chat/completions"
    default_model = "grok-2"


class QwenProvider(ChatCompletionsProvider):
    kind = ProviderKind.QWEN
    display_name = "Qwen"
    endpoint = "https://dashscope.aliyuncs.com/compatible-mode/v1/chat/completions"
    default_model = "qwen-max"


class ZAIProvider(ChatCompletionsProvider):
    kind = ProviderKind.ZAI
    display_name = "z.ai"
    endpoint = "https://api.z.ai/api/paas/v4/chat/completions"
    default_model = "glm-4-plus"


class MinimaxProvider(ChatCompletionsProvider):
    kind = ProviderKind.MINIMAX
    display_name = "Minimax"
    endpoint = "https://api.minimax.chat/v1/text/chatcompletion_v2"
    default_model = "abab6.5s-chat"

    def parse_response(self, data: Dict[str, Any]) -> str:
        # Minimax reports API errors with HTTP 200 and a non-zero status_code
        base_resp = data.get("base_resp") or {}
        code = base_resp.get("status_code", 0)
        if code:
            message = base_resp.get("status_msg") or f"error code {code}"
            if code in (1004, 2049):
                raise AuthError(self.display_name, message)
            if code in (1002, 1039):
                raise RateLimited(self.display_name, message)
            raise ProviderRequestError(self.display_name, message)

        choice = data["choices"][0]
        message = choice.get("message")
        if isinstance(message, dict) and message.get("content"):
            return message["content"]
        return choice["text"]


class AnthropicProvider(LLMProvider):
    kind = ProviderKind.ANTHROPIC
    display_name = "Anthropic"
    endpoint = "https://api.anthropic.com/v1/messages"
    default_model = "claude-sonnet-4-20250514"
    api_version = "2023-06-01"

    def build_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": api_key,
            "anthropic-version": self.api_version,
        }

    def build_payload(self, prompt: str, model: str, system: Optional[str]) -> Dict[str, Any]:
        payload = {
            "model": model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system
        return payload

    def parse_response(self, data: Dict[str, Any]) -> str:
        blocks = data["content"]
        return "".join(block["text"] for block in blocks if block.get("type") == "text")


class CohereProvider(LLMProvider):
    kind = ProviderKind.COHERE
    display_name = "Cohere"
    endpoint = "https://api.cohere.ai/v1/chat"
    default_model = "command-r-plus"

    def build_payload(self, prompt: str, model: str, system: Optional[str]) -> Dict[str, Any]:
        payload = {
            "model": model,
            "message": prompt,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
        }
        if system:
            payload["preamble"] = system
        return payload

    def parse_response(self, data: Dict[str, Any]) -> str:
        return data["text"]


PROVIDERS = {
    ProviderKind.ANTHROPIC: AnthropicProvider,
    ProviderKind.OPENAI: OpenAIProvider,
    ProviderKind.GROQ: GroqProvider,
    ProviderKind.COHERE: CohereProvider,
    ProviderKind.XAI: XAIProvider,
    ProviderKind.MINIMAX: MinimaxProvider,
    ProviderKind.QWEN: QwenProvider,
    ProviderKind.ZAI: ZAIProvider,
}

DEFAULT_MODELS = {kind: cls.default_model for kind, cls in PROVIDERS.items()}


def get_provider(identifier, **kwargs) -> LLMProvider:
    """Create the provider for a ProviderKind or provider name"""
    kind = identifier if isinstance(identifier, ProviderKind) else ProviderKind.parse(identifier)
    return PROVIDERS[kind](**kwargs)
