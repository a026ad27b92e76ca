"""Nesting limits shared by the parser and the evaluator."""

import sys
from contextlib import contextmanager
from typing import Iterator

# Default bound on expression/block nesting in the parser and on call depth in the evaluator.
DEFAULT_MAX_DEPTH = 100

# Host frames reserved per level of Sepia nesting.
FRAMES_PER_LEVEL = 50


@contextmanager
def recursion_headroom(max_depth: int) -> Iterator[None]:
    """Raise the host recursion limit so `max_depth` levels fit under it.

    The configured Sepia limits then trip first and are reported as
    Sepia errors instead of host crashes. The previous limit is restored on
    exit.
    """
    previous = sys.getrecursionlimit()
    needed = max_depth * FRAMES_PER_LEVEL + 1000
    if needed > previous:
        sys.setrecursionlimit(needed)
    try:
        yield
    finally:
        sys.setrecursionlimit(previous)
