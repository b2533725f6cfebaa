"""Cooperative cancellation for long-running turns and extractions."""

from __future__ import annotations

from ..exceptions import CancelledError


class CancellationToken:
    """
    A flag the caller sets and the orchestrator polls at suspend points
    (before each model call, each tool dispatch, each extraction attempt).
    """

    def __init__(self) -> None:
        self._cancelled = False
        self._reason = ""

    def cancel(self, reason: str = "cancelled by caller") -> None:
        self._cancelled = True
        self._reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise CancelledError(self._reason)


def check(token: CancellationToken | None) -> None:
    if token is not None:
        token.raise_if_cancelled()
