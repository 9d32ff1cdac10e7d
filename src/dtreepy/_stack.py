"""Driver for nested generators (depth-first traversal without recursion)."""

from __future__ import annotations

from typing import Any, Generator


def run_nested(gen: Generator[Any, Any, Any]) -> Any:
    """
    Run ``gen`` to completion and return its return value.

    A generator delegates to a sub-generator by yielding it; the driver runs
    the sub-generator and sends its return value back into the yielding
    generator.  Only one interpreter frame is active at a time, so nesting
    depth is limited by memory, not by the recursion limit.
    """
    stack = [gen]
    value = None
    while True:
        try:
            sub = stack[-1].send(value)
        except StopIteration as stop:
            stack.pop()
            if not stack:
                return stop.value
            value = stop.value
            continue
        stack.append(sub)
        value = None
