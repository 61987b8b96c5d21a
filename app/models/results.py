"""
Result values returned across the gateway boundary.

Upstream failures are reported as values rather than exceptions so callers
can tell a missing login apart from a provider outage.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class ResultKind(str, Enum):
    OK = "ok"
    UNAUTHENTICATED = "unauthenticated"
    UPSTREAM_FAILURE = "upstream_failure"
    MALFORMED_RESPONSE = "malformed_response"


@dataclass(frozen=True, slots=True)
class GatewayResult(Generic[T]):
    """Outcome of a token or API operation."""

    kind: ResultKind
    value: Optional[T] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.kind is ResultKind.OK

    @classmethod
    def success(cls, value: Any = None) -> "GatewayResult[Any]":
        return cls(kind=ResultKind.OK, value=value)

    @classmethod
    def failure(cls, kind: ResultKind, error: str) -> "GatewayResult[Any]":
        if kind is ResultKind.OK:
            raise ValueError("A failure result needs a non-OK kind.")
        return cls(kind=kind, error=error)


__all__ = ["GatewayResult", "ResultKind"]
