"""
Configuration
=============
Reads ~/.jee_ai/config.json into an immutable OrchestratorConfig and sets up
logging from it.

Example config.json:

    {
        "defaults": {"model": "gemini-2.5-flash", "attemptTimeout": 20},
        "taskRouting": {"math": "qwen/qwen3-32b"},
        "models": {"deepseek/deepseek-r1:free": {"enabled": false}},
        "logging": {"level": "DEBUG", "file": "~/.jee_ai/jee_ai.log"}
    }
"""

import json
import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

from .credentials import CONFIG_DIR
from .models import TaskCategory

CONFIG_FILE = CONFIG_DIR / "config.json"

DEFAULT_ATTEMPT_TIMEOUT = 30.0
DEFAULT_REQUEST_DEADLINE = 90.0


@dataclass(frozen=True)
class OrchestratorConfig:
    default_model: str | None = None
    attempt_timeout: float = DEFAULT_ATTEMPT_TIMEOUT
    request_deadline: float = DEFAULT_REQUEST_DEADLINE
    attribution: bool = True
    task_routing: Mapping[TaskCategory, str] = field(
        default_factory=lambda: MappingProxyType({})
    )
    disabled_models: frozenset[str] = frozenset()
    log_level: str | None = None
    log_file: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "OrchestratorConfig":
        """Build from a parsed config file; invalid entries fall back to defaults."""
        defaults = _section(raw, "defaults")
        log_config = _section(raw, "logging")

        return cls(
            default_model=_string(defaults.get("model")),
            attempt_timeout=_seconds(
                defaults.get("attemptTimeout"), DEFAULT_ATTEMPT_TIMEOUT
            ),
            request_deadline=_seconds(
                defaults.get("requestDeadline"), DEFAULT_REQUEST_DEADLINE
            ),
            attribution=defaults.get("attribution") is not False,
            task_routing=MappingProxyType(_task_routing(_section(raw, "taskRouting"))),
            disabled_models=frozenset(
                model_id
                for model_id, settings in _section(raw, "models").items()
                if isinstance(settings, dict) and settings.get("enabled") is False
            ),
            log_level=_string(log_config.get("level")),
            log_file=_string(log_config.get("file")),
        )


def _section(raw: Mapping[str, Any], key: str) -> dict[str, Any]:
    value = raw.get(key, {})
    if isinstance(value, dict):
        return value
    return {}


def _string(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def _seconds(value: Any, default: float) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
        return default
    return float(value)


def _task_routing(routing: dict[str, Any]) -> dict[TaskCategory, str]:
    # A route is a model id or a list of ids; the first id wins
    result: dict[TaskCategory, str] = {}
    for task_key, route in routing.items():
        try:
            task = TaskCategory.parse(task_key)
        except ValueError:
            print(f"Warning: Ignoring routing for unknown task '{task_key}'")
            continue

        if isinstance(route, list):
            route = next((r for r in route if _string(r)), None)
        model_id = _string(route)
        if model_id:
            result[task] = model_id
    return result


def load_config(path: Path = CONFIG_FILE) -> OrchestratorConfig:
    if not path.exists():
        return OrchestratorConfig()

    try:
        with path.open("r", encoding="utf-8") as config_file:
            loaded = json.load(config_file)
    except (OSError, ValueError) as exc:
        # Can't log yet as logging isn't set up, use print
        print(f"Warning: Failed to load config from {path}: {exc}")
        return OrchestratorConfig()

    if not isinstance(loaded, dict):
        print(f"Warning: Config file {path} did not contain an object.")
        return OrchestratorConfig()

    return OrchestratorConfig.from_dict(loaded)


def setup_logging(config: OrchestratorConfig, verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO

    if not verbose and config.log_level:
        level = getattr(logging, config.log_level.upper(), logging.INFO)

    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if config.log_file:
        try:
            expanded_path = os.path.expanduser(config.log_file)
            handlers.append(logging.FileHandler(expanded_path, encoding="utf-8"))
        except OSError as e:
            # Fallback to console only if file setup fails
            print(f"Failed to setup log file {config.log_file}: {e}")

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
        force=True,
    )
