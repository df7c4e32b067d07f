"""Lua engine sandbox, config-time API, layered loading, and bridge tests.

Runs real scripts through lupa: globals that reach the host must be gone,
``require`` must stay under the config root, a failing user layer must fall
back to defaults, and handler results must lower into effects predictably.
"""

from __future__ import annotations

import subprocess
import tempfile
import unittest
from pathlib import Path

from lazybrowser.actions.context import ActionContext
from lazybrowser.actions.effects import OverlayToggle
from lazybrowser.config.defaults import DEFAULT_CONFIG
from lazybrowser.config.loader import load_configuration
from lazybrowser.errors import ScriptError
from lazybrowser.keymap.bindings import InternalHandler, ScriptHandler
from lazybrowser.process import CommandContext, ProcessOrchestrator
from lazybrowser.scripting.bridge import PreviewContext, ScriptBridge
from lazybrowser.scripting.engine import ScriptEngine


class _TempRootCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name).resolve()

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def write(self, relative: str, text: str) -> Path:
        path = self.root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path


class ScriptEngineSandboxTests(_TempRootCase):
    def test_host_reaching_globals_are_removed(self) -> None:
        engine = ScriptEngine(self.root, DEFAULT_CONFIG)

        result = engine.run_source(
            "return io == nil and os == nil and debug == nil and package == nil"
            " and python == nil and dofile == nil and loadfile == nil and load == nil",
            "sandbox",
        )

        self.assertIs(result, True)

    def test_unknown_api_function_raises_when_called(self) -> None:
        engine = ScriptEngine(self.root, DEFAULT_CONFIG)

        with self.assertRaisesRegex(ScriptError, "unknown lb function: frobnicate"):
            engine.run_source("lb.frobnicate()", "unknown")

    def test_syntax_error_is_a_script_error(self) -> None:
        engine = ScriptEngine(self.root, DEFAULT_CONFIG)

        with self.assertRaises(ScriptError):
            engine.run_source("lb.config({", "broken")

    def test_require_loads_module_under_config_root(self) -> None:
        self.write("lua/prefs/sorting.lua", "return { sort = 'size' }\n")
        engine = ScriptEngine(self.root, DEFAULT_CONFIG)

        engine.run_source("local prefs = require('prefs.sorting')\nlb.config({ ui = { sort = prefs.sort } })", "init")

        self.assertEqual(engine.tree["ui"]["sort"], "size")

    def test_require_outside_config_root_fails(self) -> None:
        self.write("secret.lua", "return {}\n")
        engine = ScriptEngine(self.root, DEFAULT_CONFIG)

        with self.assertRaisesRegex(Exception, "outside config root"):
            engine.run_source("require('../secret')", "init")

    def test_require_missing_module_fails(self) -> None:
        engine = ScriptEngine(self.root, DEFAULT_CONFIG)

        with self.assertRaisesRegex(Exception, "module not found"):
            engine.run_source("require('nope')", "init")

    def test_config_rejects_functions_outside_actions(self) -> None:
        engine = ScriptEngine(self.root, DEFAULT_CONFIG)

        with self.assertRaisesRegex(Exception, "functions are only allowed in actions"):
            engine.run_source("lb.config({ ui = { sort = function() end } })", "init")
        self.assertEqual(engine.tree["ui"]["sort"], "name")

    def test_invalid_config_value_is_not_committed(self) -> None:
        engine = ScriptEngine(self.root, DEFAULT_CONFIG)

        with self.assertRaises(Exception):
            engine.run_source("lb.config({ ui = { show_hidden = 'yes' } })", "init")
        self.assertFalse(engine.tree["ui"]["show_hidden"])


class ScriptEngineRegistrationTests(_TempRootCase):
    def test_mapkey_map_command_and_map_action_register_bindings(self) -> None:
        engine = ScriptEngine(self.root, DEFAULT_CONFIG)

        engine.run_source(
            "\n".join(
                [
                    "lb.mapkey('zz', 'sort:size', 'Sort size')",
                    "lb.map_command({'ge'}, 'Edit', 'vim {path}')",
                    "lb.map_action({'gx', 'gy'}, 'Custom', function(lb, config) end)",
                ]
            ),
            "init",
        )

        by_key = {pending.sequence: pending for pending in engine.bindings}
        self.assertEqual(by_key["zz"].handler, InternalHandler("sort:size"))
        self.assertEqual(by_key["ge"].handler, InternalHandler("run:vim {path}"))
        self.assertEqual(by_key["gx"].handler, ScriptHandler(0))
        self.assertEqual(by_key["gy"].handler, ScriptHandler(0))
        self.assertEqual(engine.callbacks[0].label, "gx,gy (Custom)")

    def test_config_actions_register_functions_and_action_strings(self) -> None:
        engine = ScriptEngine(self.root, DEFAULT_CONFIG)

        engine.run_source(
            "lb.config({ actions = {"
            " { keymap = 'zx', description = 'Fn', fn = function(lb, config) end },"
            " { keymap = { 'zq' }, action = 'quit' },"
            " } })",
            "init",
        )

        by_key = {pending.sequence: pending for pending in engine.bindings}
        self.assertEqual(by_key["zx"].handler, ScriptHandler(0))
        self.assertEqual(by_key["zq"].handler, InternalHandler("quit"))
        self.assertNotIn("actions", engine.tree)

    def test_set_previewer_requires_a_function(self) -> None:
        engine = ScriptEngine(self.root, DEFAULT_CONFIG)

        with self.assertRaises(Exception):
            engine.run_source("lb.set_previewer('cat')", "init")
        engine.run_source("lb.set_previewer(function(ctx) return nil end)", "init")
        self.assertIsNotNone(engine.previewer)


class LoadConfigurationTests(_TempRootCase):
    def test_missing_entry_file_uses_defaults(self) -> None:
        loaded = load_configuration(self.root)

        self.assertIsNone(loaded.entry)
        self.assertIsNone(loaded.error)
        self.assertEqual(loaded.store.config.ui.sort, "name")
        self.assertEqual(loaded.bindings.lookup("q").handler, InternalHandler("quit"))

    def test_user_layer_overrides_defaults(self) -> None:
        self.write(
            "init.lua",
            "lb.config({ ui = { sort = 'modified', panes = { preview = 70 } } })\n"
            "lb.mapkey('q', 'sort:size', 'Not quit')\n",
        )

        loaded = load_configuration(self.root)

        self.assertIsNone(loaded.error)
        self.assertEqual(loaded.store.config.ui.sort, "mtime")
        self.assertEqual(loaded.store.config.ui.panes.preview, 70)
        self.assertEqual(loaded.store.config.ui.panes.parent, 20)
        self.assertEqual(loaded.bindings.lookup("q").handler, InternalHandler("sort:size"))

    def test_failing_user_layer_keeps_defaults_and_drops_its_bindings(self) -> None:
        self.write(
            "init.lua",
            "lb.mapkey('zz', 'quit')\n"
            "lb.config({ ui = { sort = 'size' } })\n"
            "error('late failure')\n",
        )

        loaded = load_configuration(self.root)

        self.assertIsNotNone(loaded.error)
        self.assertTrue(loaded.error.startswith("Config error in"))
        self.assertIn("late failure", loaded.error)
        self.assertEqual(loaded.store.config.ui.sort, "name")
        self.assertIsNone(loaded.bindings.lookup("zz"))
        self.assertEqual(loaded.engine.callbacks, [])


def _fake_runner(stdout: bytes = b"", returncode: int = 0):
    calls: list[list[str]] = []

    def runner(argv, **kwargs):
        calls.append(argv)
        return subprocess.CompletedProcess(argv, returncode, stdout=stdout, stderr=b"")

    runner.calls = calls
    return runner


class ScriptBridgeTests(_TempRootCase):
    def make_bridge(self, source: str, runner=None) -> ScriptBridge:
        engine = ScriptEngine(self.root, DEFAULT_CONFIG)
        engine.run_source(source, "init")
        orchestrator = ProcessOrchestrator(runner=runner or _fake_runner())
        self.reports: list[str] = []
        return ScriptBridge(engine, orchestrator, report=self.reports.append)

    def call(self, bridge: ScriptBridge, selected_index: int = 5, current_len: int = 42):
        context = ActionContext(
            cwd=self.root,
            selected_index=selected_index,
            current_len=current_len,
            current_file=self.root / "notes.txt",
        )
        return bridge.call_action(0, DEFAULT_CONFIG, context, CommandContext(directory=self.root))

    def test_select_item_helper_moves_to_top(self) -> None:
        bridge = self.make_bridge("lb.map_action('gg', 'top', function(lb, config) lb.select_item(0) end)")

        effects = self.call(bridge)

        self.assertEqual(effects.selection, 0)
        self.assertFalse(effects.select_last)

    def test_last_index_from_context(self) -> None:
        bridge = self.make_bridge(
            "lb.map_action('G', 'bottom', function(lb, config)"
            " lb.select_item(config.context.current_len - 1) end)"
        )

        effects = self.call(bridge, current_len=42)

        self.assertEqual(effects.selection, 41)

    def test_returned_fields_override_config_mutations(self) -> None:
        bridge = self.make_bridge(
            "lb.map_action('s', 'sort', function(lb, config)"
            " config.ui.sort = 'size'; config.ui.show = 'size'"
            " return { sort = 'mtime' } end)"
        )

        effects = self.call(bridge)

        self.assertEqual(effects.config_changes["ui"]["sort"], "mtime")
        self.assertEqual(effects.config_changes["ui"]["show"], "size")

    def test_context_selected_index_mutation_becomes_selection(self) -> None:
        bridge = self.make_bridge(
            "lb.map_action('x', 'ctx', function(lb, config) config.context.selected_index = 3 end)"
        )

        self.assertEqual(self.call(bridge).selection, 3)

    def test_helper_selection_beats_context_mutation(self) -> None:
        bridge = self.make_bridge(
            "lb.map_action('x', 'both', function(lb, config)"
            " lb.select_item(1); config.context.selected_index = 3 end)"
        )

        self.assertEqual(self.call(bridge).selection, 1)

    def test_returned_selection_beats_helpers(self) -> None:
        bridge = self.make_bridge(
            "lb.map_action('x', 'ret', function(lb, config) lb.select_last_item(); return { selection = 7 } end)"
        )

        effects = self.call(bridge)

        self.assertEqual(effects.selection, 7)
        self.assertFalse(effects.select_last)

    def test_script_error_is_a_no_op_with_message(self) -> None:
        bridge = self.make_bridge(
            "lb.map_action('gx', 'Explode', function(lb, config) lb.select_item(3); error('boom') end)"
        )

        effects = self.call(bridge)

        self.assertIsNone(effects.selection)
        self.assertEqual(effects.config_changes, {})
        self.assertEqual(len(effects.messages_added), 1)
        self.assertTrue(effects.messages_added[0].startswith("Error in gx (Explode)"))
        self.assertIn("boom", effects.messages_added[0])

    def test_non_finite_selections_are_ignored(self) -> None:
        sources = (
            "lb.map_action('x', 'ret', function(lb, config) return { selection = math.huge } end)",
            "lb.map_action('x', 'ctx', function(lb, config) config.context.selected_index = 0/0 end)",
            "lb.map_action('x', 'helper', function(lb, config) lb.select_item(-math.huge) end)",
        )
        for source in sources:
            with self.subTest(source=source):
                effects = self.call(self.make_bridge(source))

                self.assertIsNone(effects.selection)
                self.assertEqual(len(effects.messages_added), 1)
                self.assertTrue(effects.messages_added[0].startswith("Ignoring invalid selection"))

    def test_non_finite_config_mutation_is_lowered_for_validation(self) -> None:
        bridge = self.make_bridge(
            "lb.map_action('x', 'lines', function(lb, config) config.ui.preview_lines = math.huge end)"
        )

        effects = self.call(bridge)

        self.assertEqual(effects.config_changes, {"ui": {"preview_lines": float("inf")}})

    def test_error_after_process_keeps_its_output_and_redraw(self) -> None:
        runner = _fake_runner(stdout=b"partial\n")
        bridge = self.make_bridge(
            "lb.map_action('x', 'late', function(lb, config)"
            " lb.os_run('make'); lb.os_run_interactive('vi'); error('late') end)",
            runner=runner,
        )

        effects = self.call(bridge)

        self.assertEqual(len(runner.calls), 2)
        self.assertEqual(effects.output, ("$ make", "partial\n"))
        self.assertTrue(effects.full_redraw)
        self.assertTrue(effects.messages_added[-1].startswith("Error in x (late)"))

    def test_config_api_rejects_calls_after_seal(self) -> None:
        bridge = self.make_bridge(
            "lb.map_action('x', 'late', function(h, config) lb.map_action('y', 'again', function() end) end)"
        )
        bridge.engine.seal()

        effects = self.call(bridge)

        self.assertIn("lb.map_action is config-time only", effects.messages_added[0])
        self.assertEqual(len(bridge.engine.callbacks), 1)

    def test_unknown_helper_is_reported_not_raised(self) -> None:
        bridge = self.make_bridge("lb.map_action('gx', 'Bad', function(lb, config) lb.does_not_exist() end)")

        effects = self.call(bridge)

        self.assertIn("unknown lb function: does_not_exist", effects.messages_added[0])

    def test_os_run_returns_output_table_and_opens_output(self) -> None:
        runner = _fake_runner(stdout=b"hello\n")
        bridge = self.make_bridge(
            "lb.map_action('x', 'run', function(lb, config)"
            " local r = lb.os_run('echo hello'); lb.show_message(r.output_text .. r.exit_code) end)",
            runner=runner,
        )

        effects = self.call(bridge)

        self.assertEqual(effects.output, ("$ echo hello", "hello\n"))
        self.assertEqual(effects.output_overlay, OverlayToggle.SHOW)
        self.assertIn("hello\n0", effects.messages_added)
        self.assertEqual(runner.calls[0][-1], "echo hello")

    def test_helpers_queue_host_commands_and_overlays(self) -> None:
        bridge = self.make_bridge(
            "lb.map_action('x', 'many', function(lb, config)"
            " lb.copy_selection(); lb.paste_clipboard(); lb.rename_item(); lb.set_theme_by_name('dark') end)"
        )

        effects = self.call(bridge)

        self.assertEqual(effects.commands, ["copy", "paste"])
        self.assertEqual(effects.prompt, "rename_entry")
        self.assertEqual(effects.theme_name, "dark")

    def test_get_selected_paths_sees_context(self) -> None:
        bridge = self.make_bridge(
            "lb.map_action('x', 'sel', function(lb, config)"
            " local paths = lb.get_selected_paths(); lb.show_message(#paths .. ':' .. paths[1]) end)"
        )
        context = ActionContext(cwd=self.root, selected_paths=("/a", "/b"))

        effects = bridge.call_action(0, DEFAULT_CONFIG, context, CommandContext(directory=self.root))

        self.assertEqual(effects.messages_added, ["2:/a"])

    def test_previewer_returns_command_or_none(self) -> None:
        bridge = self.make_bridge(
            "lb.set_previewer(function(ctx)"
            " if ctx.extension == 'md' then return 'glow ' .. lb.quote(ctx.path) end"
            " return nil end)"
        )

        markdown = bridge.call_previewer(PreviewContext(path=self.root / "a.md", width=40, height=10))
        text = bridge.call_previewer(PreviewContext(path=self.root / "a.txt", width=40, height=10))

        self.assertTrue(markdown.startswith("glow "))
        self.assertIsNone(text)

    def test_previewer_error_falls_back_and_reports(self) -> None:
        bridge = self.make_bridge("lb.set_previewer(function(ctx) error('nope') end)")

        self.assertIsNone(bridge.call_previewer(PreviewContext(path=self.root / "a.txt", width=1, height=1)))
        self.assertEqual(len(self.reports), 1)
        self.assertIn("nope", self.reports[0])


if __name__ == "__main__":
    unittest.main()
