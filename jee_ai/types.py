"""
Request & Result Types
======================
Per-request values passed through the orchestration layer.

None of these are cached: a RequestContext lives for one query, and the
only thing retained from a run is the RunResult handed back to the caller.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any

from .models import TaskCategory


class Intent(Enum):
    """Closed classification of a user query's purpose"""

    CONCEPT = "CONCEPT"
    ANALYSIS = "ANALYSIS"
    EMOTIONAL = "EMOTIONAL"
    PLANNING = "PLANNING"
    GENERAL = "GENERAL"


INTENT_TASKS: Mapping[Intent, TaskCategory] = MappingProxyType(
    {
        Intent.CONCEPT: TaskCategory.MATH,
        Intent.ANALYSIS: TaskCategory.ANALYSIS,
        Intent.PLANNING: TaskCategory.PLANNING,
        Intent.EMOTIONAL: TaskCategory.CREATIVE,
        Intent.GENERAL: TaskCategory.CHAT,
    }
)


def task_for_intent(intent: Intent) -> TaskCategory:
    return INTENT_TASKS.get(intent, TaskCategory.CHAT)


RESPONSE_LENGTHS = ("short", "medium", "long")
TONES = ("encouraging", "neutral", "direct")


@dataclass(frozen=True)
class UserPreferences:
    """
    Per-user configuration. Owned by the caller; the orchestration layer
    only reads it.
    """

    default_model: str | None = None
    model_overrides: Mapping[TaskCategory, str] = field(default_factory=dict)
    api_keys: Mapping[str, str] = field(default_factory=dict)
    response_length: str = "medium"
    tone: str = "neutral"
    custom_instructions: str | None = None
    socratic_mode: bool = False

    def __post_init__(self) -> None:
        if self.response_length not in RESPONSE_LENGTHS:
            raise ValueError(f"Invalid response length: '{self.response_length}'")
        if self.tone not in TONES:
            raise ValueError(f"Invalid tone: '{self.tone}'")

    def override_for(self, task: TaskCategory) -> str | None:
        return self.model_overrides.get(task) or None

    def with_overrides(self, overrides: Mapping[TaskCategory, str]) -> "UserPreferences":
        """Copy with lower-precedence overrides; explicit entries win."""
        merged = dict(overrides)
        merged.update(self.model_overrides)
        return replace(self, model_overrides=merged)

    def __repr__(self) -> str:
        # Keys stay out of reprs and logs
        return (
            f"UserPreferences(default_model={self.default_model!r}, "
            f"overrides={len(self.model_overrides)}, "
            f"api_keys=[{', '.join(sorted(self.api_keys))}])"
        )


@dataclass(frozen=True)
class StudentProfile:
    name: str = "Student"
    target_exams: tuple[str, ...] = ("JEE Advanced",)


@dataclass(frozen=True)
class StudentSummary:
    """Pre-aggregated performance history handed to persona prompts"""

    tests_taken: int = 0
    trend: str = "Insufficient Data"
    subject_averages: Mapping[str, float] = field(default_factory=dict)
    weak_topics: tuple[tuple[str, int], ...] = ()
    error_causes: tuple[str, ...] = ()
    primary_diagnosis: str = "Knowledge (Conceptual Gaps)"

    def to_prompt_lines(self) -> list[str]:
        averages = ", ".join(
            f"{subject.title()}: {value:.1f}"
            for subject, value in self.subject_averages.items()
        )
        weak = ", ".join(f"{topic} ({count})" for topic, count in self.weak_topics)
        return [
            f"- Tests Taken: {self.tests_taken}",
            f"- Trend: {self.trend}",
            f"- Recent Avgs: [{averages or 'N/A'}]",
            f"- Top Weak Topics: {weak or 'None detected yet.'}",
            f"- Top Error Causes: {', '.join(self.error_causes) or 'N/A'}",
            f"- Primary Diagnosis: {self.primary_diagnosis}",
        ]


@dataclass(frozen=True)
class RequestContext:
    """Ephemeral per-query context; callers pre-compact any history."""

    query: str
    preferences: UserPreferences = field(default_factory=UserPreferences)
    background: str | None = None
    summary: StudentSummary | None = None
    profile: StudentProfile = field(default_factory=StudentProfile)


@dataclass(frozen=True)
class ToolCall:
    """A function call requested by the model"""

    name: str
    args: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class DispatchResult:
    """Provider response normalized at the dispatcher boundary"""

    text: str
    model_id: str
    tool_calls: tuple[ToolCall, ...] = ()
    latency_ms: float = 0.0


@dataclass(frozen=True)
class AttemptRecord:
    model_id: str
    error_summary: str


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of one candidate attempt: either a result or an error"""

    model_id: str
    result: DispatchResult | None = None
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.result is not None

    @classmethod
    def succeeded(cls, result: DispatchResult) -> "AttemptOutcome":
        return cls(model_id=result.model_id, result=result)

    @classmethod
    def failed(cls, model_id: str, error: str) -> "AttemptOutcome":
        return cls(model_id=model_id, error=error)


@dataclass(frozen=True)
class RunResult:
    """What the caller gets back from one orchestrated request"""

    text: str
    responded_by: str
    was_fallback: bool
    tool_calls: tuple[ToolCall, ...] = ()
    attempts: tuple[AttemptRecord, ...] = ()
    latency_ms: float = 0.0

    def as_tuple(self) -> tuple[str, str, bool]:
        return self.text, self.responded_by, self.was_fallback
