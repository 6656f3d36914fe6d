import json
import logging
import sys
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

# Add package root to path
sys.path.append(str(Path(__file__).parent.parent))

from jee_ai.config import OrchestratorConfig, load_config, setup_logging
from jee_ai.models import TaskCategory
from jee_ai.orchestrator import build_orchestrator
from jee_ai.types import UserPreferences


class TestConfigRouting(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.config_path = Path(self._tmp.name) / "config.json"

    def tearDown(self):
        self._tmp.cleanup()

    def write_config(self, payload):
        self.config_path.write_text(json.dumps(payload), encoding="utf-8")

    def test_missing_file_gives_defaults(self):
        config = load_config(self.config_path)

        self.assertEqual(config, OrchestratorConfig())
        self.assertIsNone(config.default_model)
        self.assertEqual(config.attempt_timeout, 30.0)
        self.assertEqual(config.request_deadline, 90.0)
        self.assertTrue(config.attribution)

    def test_full_config(self):
        self.write_config(
            {
                "defaults": {
                    "model": "llama-3.3-70b-versatile",
                    "attemptTimeout": 12,
                    "requestDeadline": 40,
                    "attribution": False,
                },
                "taskRouting": {"math": "qwen/qwen3-32b"},
                "models": {"deepseek/deepseek-r1:free": {"enabled": False}},
                "logging": {"level": "debug", "file": "~/jee.log"},
            }
        )

        config = load_config(self.config_path)

        self.assertEqual(config.default_model, "llama-3.3-70b-versatile")
        self.assertEqual(config.attempt_timeout, 12.0)
        self.assertEqual(config.request_deadline, 40.0)
        self.assertFalse(config.attribution)
        self.assertEqual(config.task_routing[TaskCategory.MATH], "qwen/qwen3-32b")
        self.assertEqual(config.disabled_models, frozenset({"deepseek/deepseek-r1:free"}))
        self.assertEqual(config.log_level, "debug")
        self.assertEqual(config.log_file, "~/jee.log")

    def test_routing_list_uses_first_model(self):
        # Routes may be written as a preference list; the first id wins
        self.write_config({"taskRouting": {"coding": ["gemma2-9b-it", "qwen/qwen3-32b"]}})

        config = load_config(self.config_path)

        self.assertEqual(config.task_routing[TaskCategory.CODING], "gemma2-9b-it")

    @patch("builtins.print")
    def test_unknown_task_in_routing_ignored(self, mock_print):
        self.write_config({"taskRouting": {"poetry": "gemma2-9b-it", "chat": "gemma2-9b-it"}})

        config = load_config(self.config_path)

        self.assertEqual(dict(config.task_routing), {TaskCategory.CHAT: "gemma2-9b-it"})
        mock_print.assert_called_once()

    @patch("builtins.print")
    def test_malformed_file_treated_as_empty(self, mock_print):
        self.config_path.write_text("{not json", encoding="utf-8")

        config = load_config(self.config_path)

        self.assertEqual(config, OrchestratorConfig())
        self.assertIn("Failed to load config", mock_print.call_args[0][0])

    @patch("builtins.print")
    def test_non_object_file_treated_as_empty(self, mock_print):
        self.write_config(["not", "an", "object"])

        self.assertEqual(load_config(self.config_path), OrchestratorConfig())

    def test_invalid_timeouts_fall_back(self):
        self.write_config({"defaults": {"attemptTimeout": -5, "requestDeadline": "soon"}})

        config = load_config(self.config_path)

        self.assertEqual(config.attempt_timeout, 30.0)
        self.assertEqual(config.request_deadline, 90.0)

    def test_custom_task_routing_reaches_resolver(self):
        config = OrchestratorConfig(task_routing={TaskCategory.CODING: "gemma2-9b-it"})
        assistant = build_orchestrator(config)

        prefs = assistant.default_preferences().with_overrides(config.task_routing)
        candidates = assistant.orchestrator.resolver.resolve(TaskCategory.CODING, prefs)

        self.assertEqual(candidates[0], "gemma2-9b-it")

    def test_disabled_model(self):
        config = OrchestratorConfig(
            disabled_models=frozenset({"llama-3.3-70b-versatile", "gemini-2.5-flash"})
        )
        assistant = build_orchestrator(config)

        candidates = assistant.orchestrator.resolver.resolve(
            TaskCategory.ANALYSIS, UserPreferences()
        )

        self.assertNotIn("llama-3.3-70b-versatile", candidates)
        # The terminal model cannot be disabled
        self.assertEqual(candidates[-1], "gemini-2.5-flash")

    def test_orchestrator_takes_timeouts_from_config(self):
        config = OrchestratorConfig(attempt_timeout=5, request_deadline=15, attribution=False)
        orchestrator = build_orchestrator(config).orchestrator

        self.assertEqual(orchestrator.attempt_timeout, 5)
        self.assertEqual(orchestrator.request_deadline, 15)
        self.assertFalse(orchestrator.attribution)


class TestLoggingSetup(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = logging.getLogger()
        self._saved = (self.root.level, list(self.root.handlers))

    def tearDown(self):
        for handler in self.root.handlers:
            if handler not in self._saved[1]:
                handler.close()
        self.root.setLevel(self._saved[0])
        self.root.handlers[:] = self._saved[1]
        self._tmp.cleanup()

    def test_file_handler_added(self):
        log_file = str(Path(self._tmp.name) / "jee_ai.log")

        setup_logging(OrchestratorConfig(log_level="warning", log_file=log_file))

        file_handlers = [
            h for h in self.root.handlers if isinstance(h, logging.FileHandler)
        ]
        self.assertEqual(len(file_handlers), 1)
        self.assertEqual(self.root.level, logging.WARNING)

    def test_verbose_overrides_configured_level(self):
        setup_logging(OrchestratorConfig(log_level="error"), verbose=True)

        self.assertEqual(self.root.level, logging.DEBUG)


if __name__ == "__main__":
    unittest.main()
