"""
Candidate Resolver
==================
Turns a task category plus user preferences into the ordered, deduplicated
list of model ids the orchestrator will attempt.
"""

import logging
from collections.abc import Iterable

from .models import FallbackChainTable, ModelRegistry, TaskCategory
from .types import UserPreferences

logger = logging.getLogger(__name__)


class CandidateResolver:
    """
    Orders candidates as:
    1. the user's explicit override for the task
    2. the persona's preferred model, if any
    3. the task's static fallback chain
    4. the task-complexity safety net
    5. the terminal structured model (always present, always last resort)
    """

    def __init__(
        self,
        registry: ModelRegistry,
        chains: FallbackChainTable,
        disabled: Iterable[str] = (),
    ):
        self.registry = registry
        self.chains = chains
        self.disabled = frozenset(disabled) - {chains.terminal}

    def _usable(self, model_id: str | None, source: str) -> bool:
        if not model_id:
            return False
        if model_id not in self.registry:
            logger.warning(f"Ignoring unknown {source} model '{model_id}'")
            return False
        if model_id in self.disabled:
            logger.debug(f"Skipping disabled model: {model_id}")
            return False
        return True

    def resolve(
        self,
        task: TaskCategory,
        prefs: UserPreferences,
        preferred: str | None = None,
    ) -> list[str]:
        candidates: list[str] = []

        def append(model_id: str | None, source: str) -> None:
            if model_id not in candidates and self._usable(model_id, source):
                candidates.append(model_id)  # type: ignore[arg-type]

        append(prefs.override_for(task), "override")
        append(preferred, "preferred")
        for model_id in self.chains.chain(task):
            append(model_id, "chain")
        append(self.chains.safety_net(task), "safety net")

        terminal = self.chains.terminal
        if terminal not in candidates:
            candidates.append(terminal)

        if not self.registry.require(candidates[-1]).is_structured:
            self._close_on_structured(candidates)

        return candidates

    def _close_on_structured(self, candidates: list[str]) -> None:
        """
        Make the list end on a structured model when an override or persona
        preference pulled the chain's structured tail forward.
        """
        fallbacks = [self.chains.fast_safety_net, self.chains.reasoning_safety_net]
        fallbacks += [m.id for m in self.registry if m.is_structured]
        for model_id in fallbacks:
            model = self.registry.require(model_id)
            if (
                model.is_structured
                and model_id not in candidates
                and model_id not in self.disabled
            ):
                candidates.append(model_id)
                return

        candidates.remove(self.chains.terminal)
        candidates.append(self.chains.terminal)
