"""
History Summarizer
==================
Compacts raw test reports and question logs into a StudentSummary so
persona prompts stay bounded no matter how long the history grows.
"""

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass

from .types import StudentSummary

WRONG_STATUSES = frozenset({"wrong", "partially correct", "partially-correct"})
SUBJECTS = ("physics", "chemistry", "maths")

SILLY_MISTAKE = "Silly Mistake"
CONCEPTUAL_GAP = "Conceptual Gap"


@dataclass(frozen=True)
class ExamScore:
    """Marks for one test, total and per subject"""

    total: float
    physics: float = 0.0
    chemistry: float = 0.0
    maths: float = 0.0


@dataclass(frozen=True)
class MistakeLog:
    """One logged question outcome"""

    topic: str
    status: str
    subject: str = ""
    reason: str | None = None

    @property
    def is_error(self) -> bool:
        return self.status.strip().lower() in WRONG_STATUSES


def score_trend(totals: Sequence[float]) -> str:
    """Compare the first and last totals of a window (5% dead band)."""
    if len(totals) < 2:
        return "Insufficient Data"
    first, last = totals[0], totals[-1]
    # Negative marking can push a total below zero
    band = abs(first) * 0.05
    if last > first + band:
        return "Improving"
    if last < first - band:
        return "Declining"
    return "Plateauing"


def summarize_history(
    scores: Sequence[ExamScore],
    logs: Sequence[MistakeLog],
    recent: int = 5,
    max_logs: int = 200,
    max_topics: int = 5,
    max_reasons: int = 3,
) -> StudentSummary:
    """
    Aggregate performance history into a compact summary.

    Only the last `recent` tests feed the trend and subject averages, and
    only the `max_logs` most recent logs feed the error analysis.
    """
    window = list(scores)[-recent:] if recent > 0 else []
    denominator = len(window) or 1
    averages = {
        subject: sum(getattr(score, subject) for score in window) / denominator
        for subject in SUBJECTS
    }

    relevant = list(logs)[-max_logs:] if max_logs > 0 else []
    topic_counts: Counter[str] = Counter()
    reason_counts: Counter[str] = Counter()
    for log in relevant:
        if not log.is_error:
            continue
        if log.topic and log.topic != "N/A":
            topic_counts[log.topic] += 1
        if log.reason:
            reason_counts[log.reason] += 1

    if reason_counts[SILLY_MISTAKE] > reason_counts[CONCEPTUAL_GAP]:
        diagnosis = "Execution/Focus (Silly Mistakes)"
    else:
        diagnosis = "Knowledge (Conceptual Gaps)"

    return StudentSummary(
        tests_taken=len(scores),
        trend=score_trend([score.total for score in window]),
        subject_averages=averages if window else {},
        weak_topics=tuple(topic_counts.most_common(max_topics)),
        error_causes=tuple(
            reason for reason, _ in reason_counts.most_common(max_reasons)
        ),
        primary_diagnosis=diagnosis,
    )
