"""
JEE AI - Request Orchestration for the Student Performance Dashboard
====================================================================

Routes each student question to a persona and a task category, then runs
it through an ordered list of candidate models (open models first, the
structured provider last) until one answers.

Security Features:
- No API keys stored in code
- Secure credential storage (keyring/encrypted file)
- Input validation and log redaction

Example Usage:
    >>> from jee_ai import build_orchestrator, set_api_key
    >>>
    >>> # Configure credentials (run once)
    >>> set_api_key("google", "AIza...")
    >>> set_api_key("groq", "gsk_...")
    >>>
    >>> import asyncio
    >>>
    >>> async def main():
    ...     assistant = build_orchestrator()
    ...     reply = await assistant.answer("Why did my physics marks drop?")
    ...     print(reply.result.text)
    ...     await assistant.aclose()
    >>>
    >>> asyncio.run(main())
"""

__version__ = "1.0.0"

from .classifier import IntentClassifier
from .config import OrchestratorConfig, load_config
from .credentials import (
    CredentialManager,
    CredentialSet,
    configure_credentials_interactive,
    get_api_key,
    get_credential_manager,
    set_api_key,
)
from .dispatcher import Dispatcher
from .errors import (
    AllCandidatesExhausted,
    CredentialMissing,
    OrchestrationError,
    ProviderError,
    UnknownModelError,
)
from .models import (
    FallbackChainTable,
    ModelDescriptor,
    ModelRegistry,
    ProviderFamily,
    TaskCategory,
)
from .orchestrator import (
    AssistantReply,
    Orchestrator,
    StudyAssistant,
    build_orchestrator,
)
from .personas import get_persona
from .resolver import CandidateResolver
from .types import Intent, RequestContext, RunResult, UserPreferences

__all__ = [
    # Version
    "__version__",

    # Credential management
    "get_api_key",
    "set_api_key",
    "get_credential_manager",
    "CredentialManager",
    "CredentialSet",
    "configure_credentials_interactive",

    # Configuration
    "OrchestratorConfig",
    "load_config",

    # Errors
    "OrchestrationError",
    "ProviderError",
    "CredentialMissing",
    "UnknownModelError",
    "AllCandidatesExhausted",

    # Catalog
    "ModelDescriptor",
    "ModelRegistry",
    "FallbackChainTable",
    "ProviderFamily",
    "TaskCategory",

    # Orchestration
    "Intent",
    "IntentClassifier",
    "get_persona",
    "CandidateResolver",
    "Dispatcher",
    "Orchestrator",
    "StudyAssistant",
    "AssistantReply",
    "build_orchestrator",
    "RequestContext",
    "RunResult",
    "UserPreferences",
]
