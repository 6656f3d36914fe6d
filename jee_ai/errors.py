"""
Error Taxonomy
==============
Typed failures raised by the orchestration layer.

Only AllCandidatesExhausted is meant to reach callers; everything else is
absorbed inside the Orchestrator and recorded in the attempt trail.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .types import AttemptRecord


class OrchestrationError(Exception):
    """Base class for orchestration failures"""


class UnknownModelError(OrchestrationError):
    """Model id is not present in the registry"""

    def __init__(self, model_id: str):
        super().__init__(f"Unknown model: '{model_id}'.")
        self.model_id = model_id


class CredentialMissing(OrchestrationError):
    """No secret configured for a provider (causes a silent skip)"""

    def __init__(self, provider: str):
        super().__init__(f"No credential configured for provider '{provider}'.")
        self.provider = provider


class ProviderError(OrchestrationError):
    """One inference attempt failed (transport, auth, malformed response)"""

    def __init__(self, model_id: str, cause: str | BaseException):
        self.model_id = model_id
        self.cause = cause
        super().__init__(f"{model_id}: {cause}")

    @property
    def summary(self) -> str:
        return str(self.cause) or type(self.cause).__name__


class AllCandidatesExhausted(OrchestrationError):
    """Every candidate model was skipped or failed"""

    NO_CREDENTIALS = "no candidate had credentials"

    def __init__(
        self,
        task: str,
        attempts: list[AttemptRecord],
        reason: str | None = None,
    ):
        self.task = task
        self.attempts = list(attempts)
        self.reason = reason
        if self.attempts:
            last_error = self.attempts[-1].error_summary
        else:
            last_error = reason or self.NO_CREDENTIALS
        message = (
            f"All LLM candidates failed for task '{task}' "
            f"({len(self.attempts)} tried). Last error: {last_error}"
        )
        if reason and self.attempts:
            message += f" ({reason})"
        super().__init__(message)

    @property
    def last_error(self) -> str | None:
        if not self.attempts:
            return None
        return self.attempts[-1].error_summary
