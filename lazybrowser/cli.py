"""Command-line front door for lazybrowser.

Parses CLI options, sets up tracing, loads the layered configuration, and
dispatches into the interactive browser runtime.
"""

from __future__ import annotations

import argparse
import json
import os
import sys
import termios
from pathlib import Path

from .app import run_browser
from .config.loader import load_configuration
from .trace import configure_trace


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="lazybrowser",
        description="Browse directories in a three-pane terminal UI, scripted from init.lua.",
    )
    parser.add_argument("path", nargs="?", default=None, help="Directory or file to start at. Defaults to cwd.")
    parser.add_argument("--config-dir", default=None, help="Configuration root (overrides discovery).")
    parser.add_argument(
        "--trace",
        nargs="?",
        const="",
        default=None,
        metavar="FILE",
        help="Write a diagnostic trace (to FILE, or the default trace file).",
    )
    parser.add_argument("--print-config", action="store_true", help="Print the merged configuration and exit.")
    return parser


def main(default_path: Path | None = None, argv: list[str] | None = None) -> None:
    """Parse CLI arguments and launch the browser.

    ``default_path`` is primarily for tests; when omitted the current working
    directory is used.
    """
    args = build_parser().parse_args(argv)

    if args.trace is not None:
        configure_trace(Path(args.trace) if args.trace else None, force=True)
    else:
        configure_trace()

    config_root = Path(args.config_dir).expanduser() if args.config_dir else None
    loaded = load_configuration(config_root)

    if args.print_config:
        if loaded.error:
            sys.stderr.write(loaded.error + "\n")
        sys.stdout.write(json.dumps(loaded.store.tree, indent=2, sort_keys=True, default=str) + "\n")
        return

    if default_path is None:
        default_path = Path.cwd()
    path = Path(args.path) if args.path else default_path
    if not path.exists():
        raise SystemExit(f"Path not found: {path}")

    stdin_fd = sys.stdin.fileno()
    stdout_fd = sys.stdout.fileno()
    if not os.isatty(stdin_fd) or not os.isatty(stdout_fd):
        raise SystemExit("lazybrowser needs an interactive terminal.")
    try:
        run_browser(path, loaded, stdin_fd, stdout_fd)
    except termios.error as exc:
        raise SystemExit(f"Cannot initialise terminal: {exc}") from exc


if __name__ == "__main__":
    main()
