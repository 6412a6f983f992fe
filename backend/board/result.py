"""Explicit success/failure values returned by board operations.

Operations never raise for expected failures (duplicate link, missing
message, permission denied, upstream trouble). They return a ``Result`` and
let the caller decide whether to surface it, retry it or ignore it.

Usage:
    from board.result import Result, fail, success

    if existing:
        return fail(409, "Someone already posted this link.")
    return success({"id": opportunity_id})
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Result:
    """Outcome of an operation. ``code`` and ``error`` are only set on failure."""

    ok: bool
    data: Any = field(default_factory=dict)
    code: int | None = None
    error: str | None = None


def success(data: Any = None) -> Result:
    return Result(ok=True, data={} if data is None else data)


def fail(code: int, error: str) -> Result:
    return Result(ok=False, data=None, code=code, error=error)
