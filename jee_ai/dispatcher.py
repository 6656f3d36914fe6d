"""
Provider Dispatcher
===================
Executes exactly one inference attempt for one candidate model, choosing
the adapter from the model's provider family.
"""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .errors import ProviderError
from .models import ModelRegistry, ProviderFamily
from .providers import (
    BaseProvider,
    CompletionRequest,
    GeminiProvider,
    InputValidator,
    OpenAICompatibleProvider,
)
from .tools import ToolDeclaration
from .types import DispatchResult

logger = logging.getLogger(__name__)


class Dispatcher:
    """Routes one attempt to the structured or generic-chat adapter"""

    def __init__(
        self,
        registry: ModelRegistry,
        structured: BaseProvider | None = None,
        generic: BaseProvider | None = None,
    ):
        self.registry = registry
        self._providers: dict[ProviderFamily, BaseProvider] = {
            ProviderFamily.STRUCTURED: structured or GeminiProvider(),
            ProviderFamily.GENERIC_CHAT: generic or OpenAICompatibleProvider(),
        }

    def provider_for(self, family: ProviderFamily) -> BaseProvider:
        return self._providers[family]

    async def dispatch(
        self,
        model_id: str,
        prompt: str,
        *,
        api_key: str,
        system_instruction: str | None = None,
        tools: Iterable[ToolDeclaration] = (),
        json_requested: bool = False,
        json_schema: Mapping[str, Any] | None = None,
        temperature: float = 0.7,
    ) -> DispatchResult:
        """
        Run one attempt against `model_id`.

        Returns the normalized text (and any tool calls); raises
        ProviderError for unknown models, transport or auth failures and
        malformed responses.
        """
        model = self.registry.get(model_id)
        if model is None:
            raise ProviderError(model_id, f"Unknown model: '{model_id}'.")

        request = CompletionRequest(
            prompt=prompt,
            system_instruction=system_instruction,
            tools=tuple(tools),
            json_requested=json_requested or json_schema is not None,
            json_schema=json_schema,
            temperature=temperature,
        )

        provider = self._providers[model.provider_family]
        logger.debug(
            f"Dispatching to {model.id} via {model.provider_family.value} path "
            f"(tools={len(request.tools)}, json={request.json_requested})"
        )

        try:
            return await provider.complete(model, request, api_key)
        except ProviderError as e:
            logger.debug(
                f"{model.id} failed: {InputValidator.sanitize_for_logging(e.summary)}"
            )
            raise

    async def aclose(self) -> None:
        for provider in self._providers.values():
            await provider.aclose()
