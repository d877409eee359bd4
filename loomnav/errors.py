"""Error taxonomy for navigator actions.

Validation errors are user mistakes and are shown verbatim. Collaborator
errors come from the Forest, the generator or persistence. Invariant errors
are programming errors and are reported distinctly.
"""

from __future__ import annotations

import traceback

UNKNOWN_ERROR_MESSAGE = "An unknown error occurred."


class NavigatorError(Exception):
    """Base class for errors raised by loomnav components."""


class ValidationError(NavigatorError):
    """Invalid user input (bookmark titles, slash commands, model strings)."""


class NodeNotFoundError(NavigatorError):
    def __init__(self, node_id: str) -> None:
        super().__init__(f"Node not found: {node_id}")
        self.node_id = node_id


class GenerationError(NavigatorError):
    """Generation collaborator failed to produce candidates."""


class InvariantError(NavigatorError):
    """Tree invariant violated; the running action is halted."""


def format_error(exc: BaseException, debug: bool = False) -> str:
    """Return a status-line message for ``exc``.

    With ``debug`` the formatted traceback is appended on following lines.
    """
    message = str(exc).strip()
    if not message:
        message = UNKNOWN_ERROR_MESSAGE
    if isinstance(exc, InvariantError):
        message = f"Internal error: {message}"
    if debug:
        detail = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        message = f"{message}\n{detail.rstrip()}"
    return message
