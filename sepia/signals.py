"""Statement execution outcomes.

Every statement-executing call returns one of these values instead of
unwinding the host stack: ``NORMAL`` to continue with the next statement,
``Return`` to leave the current function, ``BREAK``/``CONTINUE`` for the
enclosing loop, and ``Raised`` for an exception looking for a handler.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


class Signal:
    """Base class for statement outcomes."""
    pass


class Normal(Signal):
    def __repr__(self) -> str:
        return 'NORMAL'


class Break(Signal):
    def __repr__(self) -> str:
        return 'BREAK'


class Continue(Signal):
    def __repr__(self) -> str:
        return 'CONTINUE'


NORMAL = Normal()
BREAK = Break()
CONTINUE = Continue()


@dataclass
class Return(Signal):
    value: Any


@dataclass
class Raised(Signal):
    exception: Any
    line: Optional[int] = None
    column: Optional[int] = None
