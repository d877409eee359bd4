"""Command-line front door for loomnav.

Parses CLI options, merges them over the config-file defaults, resolves the
node to start from and hands over to the asyncio runtime loop.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import dataclass
from functools import partial
from pathlib import Path

from loguru import logger

from .errors import ValidationError
from .generation import HttpGenerator, parse_model_string
from .logging_config import configure_logging
from .nodes import GenerateOptions, NodeId, RootConfig
from .runtime.command_palette import APP_COMMANDS
from .runtime.config import (
    DEFAULT_DATA_DIR,
    BookmarkStore,
    NavigatorDefaults,
    config_path,
    load_current_node_id,
    load_defaults,
    load_provider_settings,
    save_current_node_id,
)
from .runtime.controller import NavigationController
from .runtime.loop import ViewOptions, run_main_loop
from .runtime.reducer import SessionStore
from .runtime.state import SessionState
from .runtime.terminal import TerminalSession
from .store import FileForest
from .ui_theme import select_theme


def _positive_int(value: str) -> int:
    """argparse type for positive integer values."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid integer value: {value!r}") from exc
    if parsed <= 0:
        raise argparse.ArgumentTypeError("value must be >= 1")
    return parsed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="loomnav",
        description="Navigate and grow a branching conversation tree in the terminal.",
    )
    parser.add_argument("--data-dir", type=Path, default=None, help="Data directory (config, forest, log).")
    parser.add_argument("--model", default=None, help='Model as "provider/model"; selects or creates its root.')
    parser.add_argument("--system", default=None, help="System prompt for the selected root.")
    parser.add_argument("-n", "--n", dest="n", type=_positive_int, default=None, help="Completions per generation.")
    parser.add_argument("--temp", type=float, default=None, help="Sampling temperature.")
    parser.add_argument("--max-tokens", type=_positive_int, default=None, help="Max tokens per completion.")
    parser.add_argument("--style", default=None, help="Pygments style for code fences.")
    parser.add_argument("--no-color", action="store_true", help="Disable color output.")
    parser.add_argument("--debug", action="store_true", help="Show tracebacks in errors and log at DEBUG.")
    return parser


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    defaults: NavigatorDefaults
    options: GenerateOptions
    model: str | None
    system_prompt: str
    style: str
    no_color: bool
    debug: bool
    explicit_root: bool


def resolve_settings(args: argparse.Namespace) -> Settings:
    """Merge CLI flags over config-file defaults."""
    data_dir = args.data_dir if args.data_dir is not None else DEFAULT_DATA_DIR
    defaults = load_defaults(data_dir)
    options = GenerateOptions(
        n=args.n if args.n is not None else defaults.n,
        temperature=args.temp if args.temp is not None else defaults.temperature,
        max_tokens=args.max_tokens if args.max_tokens is not None else defaults.max_tokens,
    )
    return Settings(
        data_dir=data_dir,
        defaults=defaults,
        options=options,
        model=args.model or defaults.model,
        system_prompt=args.system if args.system is not None else defaults.system_prompt,
        style=args.style or defaults.style,
        no_color=args.no_color,
        debug=args.debug,
        explicit_root=args.model is not None or args.system is not None,
    )


async def resolve_start_node(forest: FileForest, settings: Settings) -> NodeId:
    """Resume the persisted node unless a root was requested or it is gone.

    Raises ``SystemExit`` when there is neither a usable node nor a model to
    create a root for.
    """
    if not settings.explicit_root:
        persisted = load_current_node_id(settings.data_dir)
        if persisted is not None and await forest.get_node(persisted) is not None:
            return persisted
        if persisted is not None:
            logger.warning("Persisted node {} no longer exists", persisted)

    if not settings.model:
        raise SystemExit(
            "No conversation to resume. Pass --model provider/model or set "
            f"defaults.model in {config_path(settings.data_dir)}."
        )
    try:
        provider, model = parse_model_string(settings.model)
    except ValidationError as exc:
        raise SystemExit(str(exc)) from exc
    root = forest.get_or_create_root(
        RootConfig(provider=provider, model=model, system_prompt=settings.system_prompt)
    )
    return root.id


async def run_app(settings: Settings) -> None:
    forest = FileForest(settings.data_dir)
    start_node_id = await resolve_start_node(forest, settings)

    generator = HttpGenerator(forest, partial(load_provider_settings, settings.data_dir))
    store = SessionStore(SessionState(current_node_id=start_node_id), APP_COMMANDS)
    controller = NavigationController(
        store,
        forest,
        generator,
        BookmarkStore(settings.data_dir),
        settings.options,
        persist_current_node=partial(save_current_node_id, settings.data_dir),
        debug=settings.debug,
    )
    view = ViewOptions(
        theme=select_theme(settings.no_color),
        style=settings.style,
        color=not settings.no_color,
        max_visible_children=settings.defaults.max_visible_children,
    )
    terminal = TerminalSession(sys.stdin.fileno(), sys.stdout.fileno())
    try:
        await run_main_loop(controller, terminal, sys.stdin.fileno(), view)
    finally:
        await generator.aclose()


def main(argv: list[str] | None = None) -> None:
    """Parse CLI arguments and launch the navigator."""
    args = build_parser().parse_args(argv)
    settings = resolve_settings(args)
    configure_logging(settings.data_dir, debug=settings.debug)
    if not sys.stdin.isatty() or not sys.stdout.isatty():
        raise SystemExit("loomnav needs an interactive terminal.")
    asyncio.run(run_app(settings))


if __name__ == "__main__":
    main()
