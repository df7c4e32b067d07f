"""Apply an ``ActionEffects`` record to host state in a fixed order.

Order: overlay directives, configuration changes, output and message text,
queued host commands, selection override, redraw, and quit last so one
handler can update state and then exit.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..config.merge import merge
from ..config.types import Config, ConfigStore
from ..errors import LazyBrowserError
from ..overlays import OverlayKind, OverlayState, WhichKeyOverlay
from ..state import AppState
from .effects import ActionEffects, OverlayToggle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EffectCallbacks:
    """Host operations the applier delegates to.

    Keeping these injected lets the applier run against plain state in
    tests without a terminal or a script runtime.
    """

    open_prompt: Callable[[str, str], None]
    open_confirm: Callable[[str], None]
    open_theme_picker: Callable[[], None]
    which_key_overlay: Callable[[], WhichKeyOverlay]
    theme_overlay: Callable[[str], dict[str, object]]
    config_changed: Callable[[Config, Config], None]
    run_command: Callable[[str], None]


def _apply_toggle(
    overlay: OverlayState,
    kind: OverlayKind,
    toggle: OverlayToggle,
    payload_factory: Callable[[], object] | None = None,
) -> None:
    if toggle is OverlayToggle.NONE:
        return
    if toggle is OverlayToggle.HIDE:
        overlay.hide(kind)
        return
    payload = payload_factory() if payload_factory is not None else None
    if toggle is OverlayToggle.SHOW:
        overlay.show(kind, payload)
    else:
        overlay.toggle(kind, payload)


def _apply_overlays(effects: ActionEffects, state: AppState, callbacks: EffectCallbacks) -> None:
    overlay = state.overlay
    before = (overlay.kind, overlay.payload)
    if effects.close_overlays:
        overlay.hide()
    _apply_toggle(overlay, OverlayKind.MESSAGES, effects.messages)
    _apply_toggle(overlay, OverlayKind.OUTPUT, effects.output_overlay)
    _apply_toggle(overlay, OverlayKind.WHICH_KEY, effects.which_key, callbacks.which_key_overlay)
    if effects.theme_picker:
        callbacks.open_theme_picker()
    if effects.prompt is not None:
        callbacks.open_prompt(effects.prompt, effects.prompt_initial)
    if effects.confirm is not None:
        callbacks.open_confirm(effects.confirm)
    if (overlay.kind, overlay.payload) != before:
        state.dirty = True
        state.full_redraw = True


def _apply_config(
    effects: ActionEffects,
    state: AppState,
    store: ConfigStore,
    callbacks: EffectCallbacks,
) -> None:
    changes = effects.config_changes
    if effects.theme_name is not None:
        try:
            changes = merge(callbacks.theme_overlay(effects.theme_name), changes)
        except (LazyBrowserError, OSError) as exc:
            state.add_message(f"Theme error: {exc}")
    if not changes:
        return
    before = store.config
    try:
        after = store.apply(changes)
    except LazyBrowserError as exc:
        logger.info("rejected config change %r: %s", changes, exc)
        state.add_message(f"Config error: {exc}")
        return
    if after != before:
        callbacks.config_changed(before, after)
        state.dirty = True


def _apply_text(effects: ActionEffects, state: AppState) -> None:
    if effects.clear_messages:
        state.messages.clear()
        state.dirty = True
    for text in effects.messages_added:
        state.add_message(text)
    if effects.output is not None:
        state.output_title, state.output_text = effects.output
        state.dirty = True


def _apply_selection(effects: ActionEffects, state: AppState) -> None:
    if effects.select_paths is not None:
        state.selected_paths = [Path(path) for path in effects.select_paths]
        state.dirty = True
    if effects.select_last:
        state.select(len(state.entries) - 1)
    elif effects.selection is not None:
        state.select(effects.selection)


def apply_effects(
    effects: ActionEffects,
    state: AppState,
    store: ConfigStore,
    callbacks: EffectCallbacks,
) -> None:
    _apply_overlays(effects, state, callbacks)
    _apply_config(effects, state, store, callbacks)
    _apply_text(effects, state)
    for line in effects.commands:
        callbacks.run_command(line)
    _apply_selection(effects, state)
    if effects.redraw or effects.full_redraw:
        state.dirty = True
    if effects.full_redraw:
        state.full_redraw = True
    if effects.quit:
        state.should_quit = True
