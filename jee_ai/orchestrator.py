"""
JEE AI Orchestrator
===================
Runs one student request through an ordered list of candidate models,
stopping at the first success and attributing the answer to the model that
actually produced it.

Flow: classify intent -> pick persona -> map to task category -> resolve
candidates -> attempt each in order (skipping models without credentials)
-> attribute.
"""

import argparse
import asyncio
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any

from .classifier import IntentClassifier, remote_classifier
from .config import OrchestratorConfig, load_config, setup_logging
from .credentials import CredentialManager, CredentialSet, get_credential_manager
from .dispatcher import Dispatcher
from .errors import AllCandidatesExhausted, OrchestrationError
from .models import ModelRegistry, TaskCategory, default_chain_table
from .personas import get_persona
from .providers import GeminiProvider, InputValidator, OpenAICompatibleProvider
from .resolver import CandidateResolver
from .tools import ToolDeclaration
from .types import (
    AttemptOutcome,
    AttemptRecord,
    Intent,
    RequestContext,
    RunResult,
    StudentProfile,
    StudentSummary,
    UserPreferences,
    task_for_intent,
)

logger = logging.getLogger(__name__)

ANSWERED_BY = "Answered by {model}"
FALLBACK_NOTE = "Fallback: {failed} was unavailable, responded via {model}"


class Orchestrator:
    """
    Sequential fallback over resolved candidates.

    Holds only read-only collaborators; every per-request value lives in
    run_request's locals, so concurrent requests never share state.
    """

    def __init__(
        self,
        resolver: CandidateResolver,
        dispatcher: Dispatcher,
        attempt_timeout: float = 30.0,
        request_deadline: float = 90.0,
        attribution: bool = True,
    ):
        self.resolver = resolver
        self.dispatcher = dispatcher
        self.attempt_timeout = attempt_timeout
        self.request_deadline = request_deadline
        self.attribution = attribution

    @property
    def registry(self) -> ModelRegistry:
        return self.resolver.registry

    async def run_request(
        self,
        task: TaskCategory | str,
        query: str,
        system_instruction: str | None,
        tools: Iterable[ToolDeclaration],
        json_expected: bool,
        preferences: UserPreferences,
        credentials: CredentialSet,
        *,
        json_schema: Mapping[str, Any] | None = None,
        preferred_model: str | None = None,
    ) -> RunResult:
        """
        Attempt each candidate in order until one succeeds.

        Candidates whose provider has no credential are skipped without
        counting as an attempt. Raises AllCandidatesExhausted when every
        attempted candidate failed (or none could be attempted).
        """
        task = TaskCategory.parse(task)
        tools = tuple(tools)
        candidates = self.resolver.resolve(task, preferences, preferred_model)
        logger.debug(f"Candidates for '{task.value}': {candidates}")

        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.request_deadline
        start_time = time.time()

        attempts: list[AttemptRecord] = []
        first_attempted: str | None = None
        reason: str | None = None

        for model_id in candidates:
            model = self.registry.require(model_id)
            api_key = credentials.get(model.provider)
            if not api_key:
                logger.debug(
                    f"Skipping {model_id}: no credential for '{model.provider}'"
                )
                continue

            remaining = deadline - loop.time()
            if remaining <= 0:
                logger.warning(
                    f"Request deadline of {self.request_deadline:.0f}s reached; "
                    f"not attempting {model_id}"
                )
                reason = f"request deadline of {self.request_deadline:g}s reached"
                break

            if first_attempted is None:
                first_attempted = model_id

            logger.info(f"Attempting {model.name} for task '{task.value}'")
            outcome = await self._attempt(
                model_id,
                query,
                api_key=api_key,
                timeout=min(self.attempt_timeout, remaining),
                system_instruction=system_instruction,
                tools=tools,
                json_expected=json_expected,
                json_schema=json_schema,
            )

            if outcome.result is not None:
                result = outcome.result
                was_fallback = model_id != first_attempted
                text = result.text
                if self.attribution and not json_expected:
                    text = self.annotate(text, model_id, first_attempted, was_fallback)
                return RunResult(
                    text=text,
                    responded_by=model_id,
                    was_fallback=was_fallback,
                    tool_calls=result.tool_calls,
                    attempts=tuple(attempts),
                    latency_ms=(time.time() - start_time) * 1000,
                )

            error = outcome.error or "unknown error"
            attempts.append(AttemptRecord(model_id=model_id, error_summary=error))
            logger.warning(
                f"{model.name} failed: {InputValidator.sanitize_for_logging(error)}"
            )

        exhausted = AllCandidatesExhausted(task.value, attempts, reason)
        logger.error(InputValidator.sanitize_for_logging(str(exhausted), max_len=500))
        raise exhausted

    async def _attempt(
        self,
        model_id: str,
        query: str,
        *,
        api_key: str,
        timeout: float,
        system_instruction: str | None,
        tools: tuple[ToolDeclaration, ...],
        json_expected: bool,
        json_schema: Mapping[str, Any] | None,
    ) -> AttemptOutcome:
        try:
            result = await asyncio.wait_for(
                self.dispatcher.dispatch(
                    model_id,
                    query,
                    api_key=api_key,
                    system_instruction=system_instruction,
                    tools=tools,
                    json_requested=json_expected,
                    json_schema=json_schema,
                ),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            return AttemptOutcome.failed(model_id, f"Timed out after {timeout:g}s")
        except OrchestrationError as e:
            summary = getattr(e, "summary", None) or str(e)
            return AttemptOutcome.failed(model_id, summary)

        return AttemptOutcome.succeeded(result)

    def annotate(
        self,
        text: str,
        model_id: str,
        first_attempted: str | None,
        was_fallback: bool,
    ) -> str:
        """Append a visible marker naming the model that answered."""
        name = self.registry.require(model_id).name
        if was_fallback and first_attempted:
            failed = self.registry.require(first_attempted).name
            marker = FALLBACK_NOTE.format(failed=failed, model=name)
        else:
            marker = ANSWERED_BY.format(model=name)
        return f"{text}\n\n---\n*{marker}*"


@dataclass(frozen=True)
class AssistantReply:
    result: RunResult
    intent: Intent
    persona_id: str
    task: TaskCategory


class StudyAssistant:
    """
    Front door for a student query: validate, classify, pick a persona,
    then hand the request to the Orchestrator.
    """

    def __init__(
        self,
        orchestrator: Orchestrator,
        classifier: IntentClassifier | None = None,
        config: OrchestratorConfig | None = None,
        credential_manager: CredentialManager | None = None,
    ):
        self.orchestrator = orchestrator
        self.classifier = classifier
        self.config = config or OrchestratorConfig()
        self.credential_manager = credential_manager

    def default_preferences(self) -> UserPreferences:
        return UserPreferences(default_model=self.config.default_model)

    def credentials_for(self, prefs: UserPreferences) -> CredentialSet:
        manager = self.credential_manager or get_credential_manager()
        return CredentialSet.resolve(prefs.api_keys, manager)

    def classifier_for(self, credentials: CredentialSet) -> IntentClassifier:
        if self.classifier is not None:
            return self.classifier
        return IntentClassifier(
            remote=remote_classifier(self.orchestrator.dispatcher, credentials)
        )

    async def answer(
        self,
        query: str,
        preferences: UserPreferences | None = None,
        credentials: CredentialSet | None = None,
        *,
        background: str | None = None,
        summary: StudentSummary | None = None,
        profile: StudentProfile | None = None,
        task: TaskCategory | str | None = None,
        model_override: str | None = None,
        json_expected: bool = False,
        json_schema: Mapping[str, Any] | None = None,
    ) -> AssistantReply:
        is_valid, error = InputValidator.validate_prompt(query)
        if not is_valid:
            raise ValueError(error)

        prefs = (preferences or self.default_preferences()).with_overrides(
            self.config.task_routing
        )
        if credentials is None:
            credentials = self.credentials_for(prefs)

        intent = await self.classifier_for(credentials).classify(query)
        persona = get_persona(intent)
        category = TaskCategory.parse(task) if task else task_for_intent(intent)
        logger.info(f"Intent {intent.value} -> {persona.name} ({category.value})")

        if model_override:
            overrides = {**prefs.model_overrides, category: model_override}
            prefs = replace(prefs, model_overrides=overrides)

        context = RequestContext(
            query=query,
            preferences=prefs,
            background=background,
            summary=summary,
            profile=profile or StudentProfile(),
        )

        result = await self.orchestrator.run_request(
            category,
            query,
            persona.build_system_prompt(context),
            persona.tool_set,
            json_expected,
            prefs,
            credentials,
            json_schema=json_schema,
            preferred_model=persona.preferred_model(prefs),
        )
        return AssistantReply(
            result=result, intent=intent, persona_id=persona.id, task=category
        )

    async def aclose(self) -> None:
        await self.orchestrator.dispatcher.aclose()


def build_orchestrator(
    config: OrchestratorConfig | None = None,
    credential_manager: CredentialManager | None = None,
) -> StudyAssistant:
    """Wire registry, chains, resolver, dispatcher and classifier from config."""
    config = config or load_config()

    registry = ModelRegistry()
    resolver = CandidateResolver(
        registry, default_chain_table(registry), disabled=config.disabled_models
    )
    dispatcher = Dispatcher(
        registry,
        structured=GeminiProvider(timeout=config.attempt_timeout),
        generic=OpenAICompatibleProvider(timeout=config.attempt_timeout),
    )
    orchestrator = Orchestrator(
        resolver,
        dispatcher,
        attempt_timeout=config.attempt_timeout,
        request_deadline=config.request_deadline,
        attribution=config.attribution,
    )
    return StudyAssistant(
        orchestrator, config=config, credential_manager=credential_manager
    )


async def main() -> None:
    """CLI interface for the orchestrator"""
    parser = argparse.ArgumentParser(description="JEE AI Orchestrator CLI")
    parser.add_argument("prompt", nargs="?", help="The question to ask")
    parser.add_argument(
        "--task",
        "-t",
        choices=[task.value for task in TaskCategory],
        help="Force a task category instead of the classified one",
    )
    parser.add_argument("--model", "-m", help="Try this model first")
    parser.add_argument("--json", action="store_true", help="Ask for JSON output")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    parser.add_argument("--configure", action="store_true", help="Configure API keys")
    parser.add_argument(
        "--list-models", action="store_true", help="List available models"
    )

    args = parser.parse_args()

    if args.configure:
        from .credentials import configure_credentials_interactive

        configure_credentials_interactive()
        return

    if args.list_models:
        print("\nAvailable Models:")
        print("=" * 60)
        for model in ModelRegistry():
            print(f"\n{model.id}:")
            print(f"  Name: {model.name}")
            print(f"  Provider: {model.provider} ({model.provider_family.value})")
            print(f"  Context: {model.context_window:,} tokens")
            print(f"  Tools: {'yes' if model.supports_structured_tools else 'no'}")
            print(f"  JSON mode: {'yes' if model.supports_json_mode else 'no'}")
            if model.description:
                print(f"  {model.description}")
        return

    if not args.prompt:
        parser.print_help()
        return

    config = load_config()
    setup_logging(config, args.verbose)
    assistant = build_orchestrator(config)

    try:
        reply = await assistant.answer(
            args.prompt,
            task=args.task,
            model_override=args.model,
            json_expected=args.json,
        )
    except (AllCandidatesExhausted, ValueError) as e:
        print(f"\nError: {e}")
        return
    finally:
        await assistant.aclose()

    result = reply.result
    print(f"\n[{result.responded_by}] ({result.latency_ms:.0f}ms)")
    print(
        f"Intent: {reply.intent.value} | Persona: {reply.persona_id} "
        f"| Task: {reply.task.value}"
    )
    print("-" * 60)
    print(result.text)
    for call in result.tool_calls:
        print(f"[tool] {call.name}: {dict(call.args)}")
    print("-" * 60)
    if result.attempts:
        print(f"Failed attempts: {', '.join(a.model_id for a in result.attempts)}")


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
