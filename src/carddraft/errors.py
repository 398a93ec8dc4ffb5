"""Error types for the text protocols.

Both exceptions are raised only inside protocol helpers and caught at
the public function boundary, which turns them into an ``ok=False``
result value.  They carry enough context (raw text, offending path) for
callers to show an actionable message.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class ProtocolParseError(Exception):
    """A transcript or JSON payload could not be parsed.

    Parameters
    ----------
    message:
        Human-readable description of the problem.
    raw_text:
        The offending text, when there is any to show.
    """

    message: str
    raw_text: str | None = None

    def __str__(self) -> str:
        return self.message

    # dataclass(frozen=True) doesn't call Exception.__init__ automatically
    def __post_init__(self) -> None:
        object.__setattr__(self, "args", (str(self),))


@dataclass(frozen=True)
class PathResolutionError(Exception):
    """A read-protocol path does not address anything readable.

    Parameters
    ----------
    message:
        Human-readable description of the problem.
    path:
        The path as the caller wrote it.
    """

    message: str
    path: str = ""

    def __str__(self) -> str:
        return self.message

    def __post_init__(self) -> None:
        object.__setattr__(self, "args", (str(self),))
