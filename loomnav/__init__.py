"""Terminal navigator for branching LLM conversation trees.

``loomnav.main`` runs the CLI; importing the package itself stays cheap and
does not pull in the runtime.
"""

from __future__ import annotations


def main(argv: list[str] | None = None) -> None:
    from .cli import main as cli_main

    cli_main(argv)


__all__ = ["main"]
