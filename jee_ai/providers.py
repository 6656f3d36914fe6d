"""
Inference Providers
===================
One adapter per dispatch protocol:

- GeminiProvider: native google-genai SDK (system instruction, function
  declarations, schema-constrained JSON).
- OpenAICompatibleProvider: plain chat-completion endpoint shared by Groq
  and OpenRouter (no tool calling, optional response_format).

Adapters raise ProviderError on any failure and return a DispatchResult
otherwise, so provider-specific shapes never leave this module.
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

import httpx
from google import genai

from .errors import ProviderError
from .models import ModelDescriptor, ProviderFamily
from .tools import ToolDeclaration, function_declarations
from .types import DispatchResult, ToolCall

logger = logging.getLogger(__name__)

JSON_INSTRUCTION = "IMPORTANT: Return valid JSON only, with no surrounding prose."
SYSTEM_OPEN = "[SYSTEM INSTRUCTIONS]"
SYSTEM_CLOSE = "[END SYSTEM INSTRUCTIONS]"

DEFAULT_TIMEOUT = 30.0


def format_http_error(exc: httpx.HTTPStatusError) -> str:
    """Format detailed error message from HTTP exception."""
    response = exc.response
    status_code = response.status_code
    message = response.reason_phrase or str(exc)
    retry_after = response.headers.get("Retry-After")

    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        error_info = payload.get("error")
        if isinstance(error_info, dict):
            error_message = error_info.get("message")
            if error_message:
                message = error_message
        elif isinstance(error_info, str) and error_info:
            message = error_info

    if retry_after:
        message = f"{message} Retry-After: {retry_after}."

    return f"HTTP {status_code}: {message}"


class InputValidator:
    """Input validation and log-safe formatting"""

    MAX_PROMPT_LENGTH = 500000

    @classmethod
    def validate_prompt(cls, prompt: str | None) -> tuple[bool, str]:
        if not prompt or not prompt.strip():
            return False, "Invalid prompt: must be a non-empty string"

        if len(prompt) > cls.MAX_PROMPT_LENGTH:
            return False, f"Prompt exceeds maximum length of {cls.MAX_PROMPT_LENGTH}"

        return True, ""

    @classmethod
    def sanitize_for_logging(cls, text: str, max_len: int = 200) -> str:
        """Truncate and redact anything that looks like an API key."""
        if not text:
            return ""
        sanitized = text[:max_len]
        sanitized = re.sub(
            r"(sk-|gsk_|AIza|api[_-]?key[=:\s]*|bearer\s+)[a-zA-Z0-9\-_]{16,}",
            "[REDACTED]",
            sanitized,
            flags=re.IGNORECASE,
        )
        return sanitized + ("..." if len(text) > max_len else "")


@dataclass(frozen=True)
class CompletionRequest:
    """Provider-neutral description of one inference attempt"""

    prompt: str
    system_instruction: str | None = None
    tools: tuple[ToolDeclaration, ...] = ()
    json_requested: bool = False
    json_schema: Mapping[str, Any] | None = None
    temperature: float = 0.7
    max_output_tokens: int | None = None


def with_json_instruction(text: str) -> str:
    return f"{text}\n\n{JSON_INSTRUCTION}"


class BaseProvider(ABC):
    """Abstract base class for inference providers"""

    @property
    @abstractmethod
    def provider_family(self) -> ProviderFamily:
        pass

    @abstractmethod
    async def complete(
        self, model: ModelDescriptor, request: CompletionRequest, api_key: str
    ) -> DispatchResult:
        """Run one attempt; raise ProviderError on failure"""

    async def aclose(self) -> None:
        return None


class GeminiProvider(BaseProvider):
    """Structured provider using the google-genai SDK"""

    def __init__(
        self,
        client_factory: Callable[[str], Any] | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._client_factory = client_factory or self._default_client
        self.timeout = timeout

    @property
    def provider_family(self) -> ProviderFamily:
        return ProviderFamily.STRUCTURED

    def _default_client(self, api_key: str) -> Any:
        return genai.Client(
            api_key=api_key,
            http_options={"timeout": int(self.timeout * 1000)},
        )

    def build_request(
        self, model: ModelDescriptor, request: CompletionRequest
    ) -> dict[str, Any]:
        """
        Build the generate_content arguments for a model.

        Lightweight instruction-tuned variants reject both the system field
        and tool declarations, so the instruction is folded into the user
        turn and tools are dropped.
        """
        prompt = request.prompt
        config: dict[str, Any] = {"temperature": request.temperature}
        if request.max_output_tokens:
            config["max_output_tokens"] = request.max_output_tokens

        if model.supports_system_instruction:
            if request.system_instruction:
                config["system_instruction"] = request.system_instruction
        elif request.system_instruction:
            folded = f"{SYSTEM_OPEN}\n{request.system_instruction}\n{SYSTEM_CLOSE}"
            prompt = f"{folded}\n\n{prompt}"

        if request.json_requested:
            if model.supports_json_mode:
                config["response_mime_type"] = "application/json"
                if request.json_schema:
                    config["response_schema"] = dict(request.json_schema)
            else:
                prompt = with_json_instruction(prompt)
        elif request.tools:
            if model.supports_structured_tools and model.supports_system_instruction:
                config["tools"] = [
                    {"function_declarations": function_declarations(request.tools)}
                ]
            else:
                logger.warning(
                    f"{model.id} does not accept tool declarations; "
                    "tool-augmented responses are unavailable for this variant"
                )

        return {
            "model": model.id,
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "config": config,
        }

    async def complete(
        self, model: ModelDescriptor, request: CompletionRequest, api_key: str
    ) -> DispatchResult:
        start_time = time.time()
        payload = self.build_request(model, request)

        try:
            client = self._client_factory(api_key)
            response = await client.aio.models.generate_content(**payload)
        except Exception as e:
            # SDK surfaces auth, quota and transport failures as assorted types
            raise ProviderError(model.id, e) from e

        return self._normalize(model, response, (time.time() - start_time) * 1000)

    @staticmethod
    def _normalize(
        model: ModelDescriptor, response: Any, latency: float
    ) -> DispatchResult:
        tool_calls = tuple(
            ToolCall(name=call.name, args=dict(call.args or {}))
            for call in (getattr(response, "function_calls", None) or [])
        )
        text = getattr(response, "text", None) or ""

        if not text and not tool_calls:
            raise ProviderError(model.id, "Empty response from structured provider")

        return DispatchResult(
            text=text,
            model_id=model.id,
            tool_calls=tool_calls,
            latency_ms=latency,
        )


PROVIDER_URLS = {
    "groq": "https://api.groq.com/openai/v1",
    "openrouter": "https://openrouter.ai/api/v1",
}


class OpenAICompatibleProvider(BaseProvider):
    """Generic chat-completion provider (Groq, OpenRouter)"""

    def __init__(
        self,
        base_urls: Mapping[str, str] = PROVIDER_URLS,
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
        app_title: str = "JEE Dashboard",
    ):
        self.base_urls = dict(base_urls)
        self.app_title = app_title
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    @property
    def provider_family(self) -> ProviderFamily:
        return ProviderFamily.GENERIC_CHAT

    def build_body(
        self, model: ModelDescriptor, request: CompletionRequest
    ) -> dict[str, Any]:
        """
        Build the chat-completion body.

        response_format is sent only to models known to honor it; the JSON
        instruction always goes into the prompt text so unsupported models
        still get asked for JSON without a hard provider rejection.
        """
        messages: list[dict[str, str]] = []
        if request.system_instruction:
            messages.append({"role": "system", "content": request.system_instruction})

        prompt = request.prompt
        if request.json_requested:
            prompt = with_json_instruction(prompt)
        messages.append({"role": "user", "content": prompt})

        body: dict[str, Any] = {
            "model": model.id,
            "messages": messages,
            "temperature": request.temperature,
        }
        if request.max_output_tokens:
            body["max_tokens"] = request.max_output_tokens
        if request.json_requested and model.supports_json_mode:
            body["response_format"] = {"type": "json_object"}

        if request.tools:
            logger.warning(
                f"{model.id} has no native tool calling; "
                f"{len(request.tools)} tool declaration(s) dropped"
            )

        return body

    def _headers(self, provider: str, api_key: str) -> dict[str, str]:
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        if provider == "openrouter":
            headers["X-Title"] = self.app_title
        return headers

    async def complete(
        self, model: ModelDescriptor, request: CompletionRequest, api_key: str
    ) -> DispatchResult:
        base_url = self.base_urls.get(model.provider)
        if base_url is None:
            raise ProviderError(
                model.id, f"No endpoint configured for '{model.provider}'"
            )

        start_time = time.time()

        try:
            response = await self._client.post(
                f"{base_url}/chat/completions",
                headers=self._headers(model.provider, api_key),
                json=self.build_body(model, request),
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise ProviderError(model.id, format_http_error(e)) from e
        except httpx.TimeoutException as e:
            raise ProviderError(model.id, f"Timeout error: {e}") from e
        except httpx.RequestError as e:
            raise ProviderError(model.id, f"Connection error: {e}") from e
        except ValueError as e:
            raise ProviderError(model.id, f"Malformed JSON response: {e}") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderError(model.id, f"Malformed response: missing {e}") from e

        if not isinstance(content, str) or not content.strip():
            raise ProviderError(model.id, "Empty response from chat provider")

        return DispatchResult(
            text=content,
            model_id=model.id,
            latency_ms=(time.time() - start_time) * 1000,
        )

    async def aclose(self) -> None:
        await self._client.aclose()
