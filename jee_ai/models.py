"""
Model Registry & Fallback Chains
================================
Static catalog of inference endpoints and the per-task fallback chains.

Both objects are built once at process start and handed to the resolver
and dispatcher; neither is mutated afterwards.
"""

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from .errors import UnknownModelError


class ProviderFamily(Enum):
    """Dispatch protocol used to reach a model"""

    STRUCTURED = "structured"
    GENERIC_CHAT = "generic-chat"


class CostTier(Enum):
    FREE = "free"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskCategory(Enum):
    """Task categories; each one owns a fallback chain"""

    CHAT = "chat"
    ANALYSIS = "analysis"
    PLANNING = "planning"
    CREATIVE = "creative"
    MATH = "math"
    CODING = "coding"

    @classmethod
    def parse(cls, value: "str | TaskCategory") -> "TaskCategory":
        if isinstance(value, TaskCategory):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown task category: '{value}'") from None


# Categories that need multi-step reasoning get the stronger safety net
COMPLEX_TASKS = frozenset(
    {
        TaskCategory.ANALYSIS,
        TaskCategory.MATH,
        TaskCategory.PLANNING,
        TaskCategory.CODING,
    }
)


@dataclass(frozen=True)
class ModelDescriptor:
    """Immutable catalog entry"""

    id: str
    name: str
    provider: str  # credential key: google, groq, openrouter
    provider_family: ProviderFamily
    context_window: int
    cost_tier: CostTier
    supports_structured_tools: bool = False
    supports_json_mode: bool = False
    supports_vision: bool = False
    # Lightweight instruction-tuned variants take neither a system field nor tools
    supports_system_instruction: bool = True
    description: str = ""

    @property
    def is_structured(self) -> bool:
        return self.provider_family is ProviderFamily.STRUCTURED


DEFAULT_MODELS: tuple[ModelDescriptor, ...] = (
    # Structured provider (Gemini native SDK)
    ModelDescriptor(
        id="gemini-2.5-flash",
        name="Gemini 2.5 Flash",
        provider="google",
        provider_family=ProviderFamily.STRUCTURED,
        context_window=1_000_000,
        cost_tier=CostTier.FREE,
        supports_structured_tools=True,
        supports_json_mode=True,
        supports_vision=True,
        description="Reasoning and multimodal workhorse.",
    ),
    ModelDescriptor(
        id="gemini-2.5-flash-lite",
        name="Gemini 2.5 Flash Lite",
        provider="google",
        provider_family=ProviderFamily.STRUCTURED,
        context_window=1_000_000,
        cost_tier=CostTier.FREE,
        supports_structured_tools=True,
        supports_json_mode=True,
        description="Ultra-fast, lightweight, low latency.",
    ),
    ModelDescriptor(
        id="gemma-3-27b-it",
        name="Gemma 3 27B",
        provider="google",
        provider_family=ProviderFamily.STRUCTURED,
        context_window=8192,
        cost_tier=CostTier.FREE,
        supports_vision=True,
        supports_system_instruction=False,
        description="Open weights model from Google.",
    ),
    # Groq (OpenAI-compatible)
    ModelDescriptor(
        id="llama-3.3-70b-versatile",
        name="Llama 3.3 70B (Groq)",
        provider="groq",
        provider_family=ProviderFamily.GENERIC_CHAT,
        context_window=32768,
        cost_tier=CostTier.FREE,
        supports_json_mode=True,
        description="GPT-4 class intelligence. Extremely fast.",
    ),
    ModelDescriptor(
        id="deepseek-r1-distill-llama-70b",
        name="DeepSeek R1 Distill (Groq)",
        provider="groq",
        provider_family=ProviderFamily.GENERIC_CHAT,
        context_window=128000,
        cost_tier=CostTier.FREE,
        supports_json_mode=True,
        description="Strong reasoning model distilled from R1.",
    ),
    ModelDescriptor(
        id="llama-3.1-8b-instant",
        name="Llama 3.1 8B (Groq)",
        provider="groq",
        provider_family=ProviderFamily.GENERIC_CHAT,
        context_window=128000,
        cost_tier=CostTier.FREE,
        supports_json_mode=True,
        description="Instant response. Best for UI interaction.",
    ),
    ModelDescriptor(
        id="gemma2-9b-it",
        name="Gemma 2 9B (Groq)",
        provider="groq",
        provider_family=ProviderFamily.GENERIC_CHAT,
        context_window=8192,
        cost_tier=CostTier.FREE,
        supports_json_mode=True,
        description="Balanced Google open model on Groq.",
    ),
    ModelDescriptor(
        id="meta-llama/llama-4-maverick-17b-128e-instruct",
        name="Llama 4 Maverick 17B",
        provider="groq",
        provider_family=ProviderFamily.GENERIC_CHAT,
        context_window=128000,
        cost_tier=CostTier.FREE,
        supports_json_mode=True,
        description="Next-gen preview model.",
    ),
    ModelDescriptor(
        id="moonshotai/kimi-k2-instruct",
        name="Kimi K2 Instruct",
        provider="groq",
        provider_family=ProviderFamily.GENERIC_CHAT,
        context_window=200000,
        cost_tier=CostTier.FREE,
        supports_json_mode=True,
        description="High context capabilities.",
    ),
    ModelDescriptor(
        id="qwen/qwen3-32b",
        name="Qwen 3 32B",
        provider="groq",
        provider_family=ProviderFamily.GENERIC_CHAT,
        context_window=32768,
        cost_tier=CostTier.FREE,
        supports_json_mode=True,
        description="Advanced reasoning.",
    ),
    # OpenRouter free tier
    ModelDescriptor(
        id="mistralai/mistral-nemo:free",
        name="Mistral Nemo",
        provider="openrouter",
        provider_family=ProviderFamily.GENERIC_CHAT,
        context_window=128000,
        cost_tier=CostTier.FREE,
        description="Great for creative writing and persona.",
    ),
    ModelDescriptor(
        id="microsoft/phi-3-mini-128k-instruct:free",
        name="Phi-3 Mini",
        provider="openrouter",
        provider_family=ProviderFamily.GENERIC_CHAT,
        context_window=128000,
        cost_tier=CostTier.FREE,
        supports_json_mode=True,
        description="High logic density for small size.",
    ),
    ModelDescriptor(
        id="deepseek/deepseek-r1:free",
        name="DeepSeek R1 (Free)",
        provider="openrouter",
        provider_family=ProviderFamily.GENERIC_CHAT,
        context_window=64000,
        cost_tier=CostTier.FREE,
        supports_json_mode=True,
        description="Top-tier reasoning. Often busy/rate-limited.",
    ),
    ModelDescriptor(
        id="qwen/qwen-2.5-coder-32b-instruct:free",
        name="Qwen 2.5 Coder 32B",
        provider="openrouter",
        provider_family=ProviderFamily.GENERIC_CHAT,
        context_window=32000,
        cost_tier=CostTier.FREE,
        supports_json_mode=True,
        description="Excellent for structured output/JSON.",
    ),
)


class ModelRegistry:
    """Read-only catalog of available models, keyed by id"""

    def __init__(self, models: Iterable[ModelDescriptor] = DEFAULT_MODELS):
        catalog: dict[str, ModelDescriptor] = {}
        for model in models:
            if model.id in catalog:
                raise ValueError(f"Duplicate model id in registry: '{model.id}'")
            catalog[model.id] = model
        self._models: Mapping[str, ModelDescriptor] = MappingProxyType(catalog)

    def get(self, model_id: str) -> ModelDescriptor | None:
        return self._models.get(model_id)

    def require(self, model_id: str) -> ModelDescriptor:
        model = self._models.get(model_id)
        if model is None:
            raise UnknownModelError(model_id)
        return model

    def ids(self) -> list[str]:
        return list(self._models)

    def by_family(self, family: ProviderFamily) -> list[ModelDescriptor]:
        return [m for m in self._models.values() if m.provider_family is family]

    def __contains__(self, model_id: object) -> bool:
        return model_id in self._models

    def __iter__(self) -> Iterator[ModelDescriptor]:
        return iter(self._models.values())

    def __len__(self) -> int:
        return len(self._models)


# Open/specialized models first; every chain ends on a structured model.
DEFAULT_CHAINS: dict[TaskCategory, tuple[str, ...]] = {
    TaskCategory.ANALYSIS: (
        "llama-3.3-70b-versatile",
        "deepseek-r1-distill-llama-70b",
        "deepseek/deepseek-r1:free",
        "gemini-2.5-flash",
    ),
    TaskCategory.MATH: (
        "deepseek-r1-distill-llama-70b",
        "llama-3.3-70b-versatile",
        "qwen/qwen3-32b",
        "gemini-2.5-flash",
    ),
    TaskCategory.PLANNING: (
        "qwen/qwen-2.5-coder-32b-instruct:free",
        "llama-3.3-70b-versatile",
        "gemini-2.5-flash",
    ),
    TaskCategory.CREATIVE: (
        "mistralai/mistral-nemo:free",
        "moonshotai/kimi-k2-instruct",
        "gemma-3-27b-it",
        "gemini-2.5-flash-lite",
    ),
    TaskCategory.CHAT: (
        "llama-3.1-8b-instant",
        "meta-llama/llama-4-maverick-17b-128e-instruct",
        "gemma-3-27b-it",
        "gemini-2.5-flash-lite",
    ),
    TaskCategory.CODING: (
        "qwen/qwen-2.5-coder-32b-instruct:free",
        "llama-3.3-70b-versatile",
        "gemini-2.5-flash",
    ),
}

REASONING_SAFETY_NET = "gemini-2.5-flash"
FAST_SAFETY_NET = "gemini-2.5-flash-lite"
TERMINAL_MODEL = "gemini-2.5-flash"


class FallbackChainTable:
    """
    Ordered model preferences per task category.

    Validated on construction: every category has a chain, every id is
    registered, and every chain (plus both safety nets and the terminal
    model) ends on the structured provider, which only needs the one
    credential the application already requires.
    """

    def __init__(
        self,
        registry: ModelRegistry,
        chains: Mapping[TaskCategory, Iterable[str]] = DEFAULT_CHAINS,
        reasoning_safety_net: str = REASONING_SAFETY_NET,
        fast_safety_net: str = FAST_SAFETY_NET,
        terminal: str = TERMINAL_MODEL,
    ):
        self.registry = registry
        frozen = {task: tuple(ids) for task, ids in chains.items()}

        for task in TaskCategory:
            chain = frozen.get(task)
            if not chain:
                raise ValueError(f"No fallback chain defined for '{task.value}'")
            for model_id in chain:
                if model_id not in registry:
                    raise ValueError(
                        f"Chain '{task.value}' references unknown model '{model_id}'"
                    )
            if not registry.require(chain[-1]).is_structured:
                raise ValueError(
                    f"Chain '{task.value}' must end on a structured-provider model"
                )

        for label, model_id in (
            ("reasoning safety net", reasoning_safety_net),
            ("fast safety net", fast_safety_net),
            ("terminal model", terminal),
        ):
            model = registry.get(model_id)
            if model is None or not model.is_structured:
                raise ValueError(
                    f"The {label} '{model_id}' must be a registered structured model"
                )

        self._chains: Mapping[TaskCategory, tuple[str, ...]] = MappingProxyType(frozen)
        self.reasoning_safety_net = reasoning_safety_net
        self.fast_safety_net = fast_safety_net
        self._terminal = terminal

    def chain(self, task: TaskCategory) -> tuple[str, ...]:
        return self._chains[task]

    def safety_net(self, task: TaskCategory) -> str:
        if task in COMPLEX_TASKS:
            return self.reasoning_safety_net
        return self.fast_safety_net

    @property
    def terminal(self) -> str:
        return self._terminal


def default_chain_table(registry: ModelRegistry | None = None) -> FallbackChainTable:
    """Build the default chain table over the given (or default) registry"""
    return FallbackChainTable(registry or ModelRegistry())
