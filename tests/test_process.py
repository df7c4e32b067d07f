"""External command execution: placeholders, env, modes, and failures."""

from __future__ import annotations

import subprocess
import tempfile
import unittest
from contextlib import contextmanager
from pathlib import Path

from lazybrowser.process import (
    CommandContext,
    ProcessOrchestrator,
    ProcessResult,
    effects_for_result,
    expand_placeholders,
)


class RecordingRunner:
    def __init__(self, returncode: int = 0, stdout: bytes = b"", stderr: bytes = b"", error: OSError | None = None):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.error = error
        self.calls: list[tuple[list[str], dict]] = []

    def __call__(self, argv, **kwargs):
        self.calls.append((argv, kwargs))
        if self.error is not None:
            raise self.error
        return subprocess.CompletedProcess(argv, self.returncode, stdout=self.stdout, stderr=self.stderr)


class FakeTerminal:
    def __init__(self) -> None:
        self.events: list[str] = []

    @contextmanager
    def suspended(self):
        self.events.append("release")
        try:
            yield
        finally:
            self.events.append("acquire")


class PlaceholderTests(unittest.TestCase):
    def test_known_placeholders_expand_and_unknown_stay(self) -> None:
        context = CommandContext(directory=Path("/srv/data"), path=Path("/srv/data/a b.tar.gz"), width=80)

        expanded = expand_placeholders("tool {path} {dir} {name} {extension} {width} {nope}", context)

        self.assertEqual(expanded, "tool /srv/data/a b.tar.gz /srv/data a b.tar.gz gz 80 {nope}")

    def test_environment_mirrors_placeholders(self) -> None:
        env = CommandContext(directory=Path("/d"), path=Path("/d/f.txt"), height=12).environment()

        self.assertEqual(env["LB_PATH"], "/d/f.txt")
        self.assertEqual(env["LB_EXT"], "txt")
        self.assertEqual(env["LB_HEIGHT"], "12")


class OrchestratorTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.directory = Path(self._tmp.name)
        self.context = CommandContext(directory=self.directory, path=self.directory / "f.txt")

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def test_captured_run_collects_output_and_env(self) -> None:
        runner = RecordingRunner(stdout=b"out\n", stderr=b"warn\n")
        orchestrator = ProcessOrchestrator(runner=runner, base_env={"HOME": "/h"})

        result = orchestrator.run_captured("cat {name}", self.context, extra_env={"FORCE_COLOR": "1"})

        argv, kwargs = runner.calls[0]
        self.assertEqual(argv, ["sh", "-c", "cat f.txt"])
        self.assertEqual(kwargs["cwd"], str(self.directory))
        self.assertEqual(kwargs["env"]["HOME"], "/h")
        self.assertEqual(kwargs["env"]["LB_NAME"], "f.txt")
        self.assertEqual(kwargs["env"]["FORCE_COLOR"], "1")
        self.assertTrue(kwargs["capture_output"])
        self.assertEqual(result.output, "out\nwarn\n")
        self.assertTrue(result.ok)

    def test_spawn_failure_becomes_error_result(self) -> None:
        orchestrator = ProcessOrchestrator(runner=RecordingRunner(error=FileNotFoundError("no shell")))

        result = orchestrator.run_captured("x", self.context)

        self.assertIsNone(result.exit_code)
        self.assertEqual(result.output, "<error: no shell>")
        self.assertEqual(result.status_message(), "Command failed: x: no shell")

    def test_interactive_run_releases_and_reacquires_terminal(self) -> None:
        terminal = FakeTerminal()
        runner = RecordingRunner(returncode=3)
        orchestrator = ProcessOrchestrator(terminal=terminal, runner=runner)

        result = orchestrator.run_interactive("vim {path}", self.context)

        self.assertEqual(terminal.events, ["release", "acquire"])
        self.assertNotIn("capture_output", runner.calls[0][1])
        self.assertTrue(result.interactive)
        self.assertEqual(result.status_message(), f"Command exited with status 3: vim {self.directory / 'f.txt'}")

    def test_interactive_spawn_failure_still_reacquires(self) -> None:
        terminal = FakeTerminal()
        orchestrator = ProcessOrchestrator(terminal=terminal, runner=RecordingRunner(error=OSError("boom")))

        result = orchestrator.run_interactive("vim", self.context)

        self.assertEqual(terminal.events, ["release", "acquire"])
        self.assertEqual(result.error, "boom")


class EffectsForResultTests(unittest.TestCase):
    def test_output_opens_overlay_titled_with_command(self) -> None:
        effects = effects_for_result(ProcessResult(command="ls", exit_code=0, stdout="a\n"))

        self.assertEqual(effects.output, ("$ ls", "a\n"))
        self.assertEqual(effects.messages_added, [])

    def test_silent_success_leaves_a_message(self) -> None:
        effects = effects_for_result(ProcessResult(command="touch x", exit_code=0))

        self.assertIsNone(effects.output)
        self.assertEqual(effects.messages_added, ["$ touch x"])

    def test_failure_adds_status_message(self) -> None:
        effects = effects_for_result(ProcessResult(command="false", exit_code=1))

        self.assertEqual(effects.messages_added, ["Command exited with status 1: false"])

    def test_interactive_forces_full_redraw(self) -> None:
        effects = effects_for_result(ProcessResult(command="vim", exit_code=0, interactive=True))

        self.assertTrue(effects.full_redraw)
        self.assertIsNone(effects.output)


if __name__ == "__main__":
    unittest.main()
