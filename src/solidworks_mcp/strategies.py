"""Ordered fallback execution of logical CAD operations.

The SolidWorks automation surface changes behavior between releases
without notice, so no single call sequence works everywhere. An operation
is instead described as an ordered list of strategies (direct API call,
command invocation, generated macro, ...). The executor tries them strictly
one after another, records why each failed, and stops at the first success.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any

from solidworks_mcp.errors import (
    AggregateStrategyFailure,
    CommandExecutionError,
    SolidWorksConnectionError,
    SolidWorksError,
    StrategyTimeoutError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Strategy:
    """One named way of performing an operation.

    Attributes:
        label: Short identifier reported to callers (e.g. "command-id").
        execute: Coroutine function performing the attempt.
        cleanup: Optional coroutine function run after a failed attempt to
            close any mode the attempt opened (a command, a dialog, a selection).
    """

    label: str
    execute: Callable[[], Awaitable[Any]]
    cleanup: Callable[[], Awaitable[None]] | None = None


@dataclass
class StrategyAttempt:
    """Recorded outcome of one failed strategy attempt.

    Attributes:
        label: Strategy label.
        error: The typed error the attempt failed with.
        elapsed_ms: Time spent in the attempt.
        cleanup_error: Error raised by the strategy's cleanup, if any.
    """

    label: str
    error: SolidWorksError
    elapsed_ms: float = 0.0
    cleanup_error: SolidWorksError | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "strategy": self.label,
            "kind": self.error.kind,
            "message": str(self.error),
            "elapsed_ms": round(self.elapsed_ms, 3),
        }
        if self.cleanup_error is not None:
            data["cleanup_error"] = str(self.cleanup_error)
        return data


@dataclass
class StrategyResult:
    """Successful outcome of a strategy run.

    Attributes:
        strategy_used: Label of the strategy that succeeded.
        payload: Value returned by that strategy.
        failures: Attempts that failed before it, in order.
    """

    strategy_used: str
    payload: Any
    failures: list[StrategyAttempt] = field(default_factory=list)


def _normalize(label: str, error: Exception) -> SolidWorksError:
    if isinstance(error, SolidWorksError):
        return error
    return CommandExecutionError(label, f"{type(error).__name__}: {error}")


class StrategyExecutor:
    """Runs strategy lists with a per-attempt time budget.

    Attributes:
        timeout_ms: Time budget for each attempt and for its cleanup, None
            for no limit.
    """

    def __init__(self, timeout_ms: int | None = None) -> None:
        self.timeout_ms = timeout_ms

    async def run(self, operation: str, strategies: Sequence[Strategy]) -> StrategyResult:
        """Try each strategy in order until one succeeds.

        Args:
            operation: Name of the logical operation, for reporting.
            strategies: Strategies in priority order.

        Returns:
            StrategyResult of the first strategy that succeeded.

        Raises:
            AggregateStrategyFailure: If every strategy failed.
            SolidWorksConnectionError: If the session is lost mid-run.
        """
        failures: list[StrategyAttempt] = []

        for strategy in strategies:
            start = time.perf_counter()
            try:
                payload = await self._attempt(operation, strategy)
            except SolidWorksConnectionError:
                raise
            except Exception as e:
                attempt = StrategyAttempt(
                    label=strategy.label,
                    error=_normalize(f"{operation}/{strategy.label}", e),
                    elapsed_ms=(time.perf_counter() - start) * 1000,
                )
                failures.append(attempt)
                logger.warning(
                    "%s: strategy %r failed: %s", operation, strategy.label, attempt.error
                )
                await self._cleanup(operation, strategy, attempt)
                continue

            if failures:
                logger.info(
                    "%s succeeded with %r after %d failed strategies",
                    operation,
                    strategy.label,
                    len(failures),
                )
            return StrategyResult(strategy.label, payload, failures)

        raise AggregateStrategyFailure(operation, failures)

    async def _bounded(self, label: str, call: Callable[[], Awaitable[Any]]) -> Any:
        if self.timeout_ms is None:
            return await call()
        try:
            return await asyncio.wait_for(call(), timeout=self.timeout_ms / 1000)
        except TimeoutError as e:
            raise StrategyTimeoutError(label, self.timeout_ms) from e

    async def _attempt(self, operation: str, strategy: Strategy) -> Any:
        return await self._bounded(f"{operation}/{strategy.label}", strategy.execute)

    async def _cleanup(self, operation: str, strategy: Strategy, attempt: StrategyAttempt) -> None:
        if strategy.cleanup is None:
            return
        # A timed-out attempt may still hold the session worker; the cleanup
        # queued behind it gets the same budget.
        try:
            await self._bounded(f"{operation}/{strategy.label}/cleanup", strategy.cleanup)
        except SolidWorksConnectionError:
            raise
        except Exception as e:
            attempt.cleanup_error = _normalize(f"{operation}/{strategy.label}/cleanup", e)
            logger.warning(
                "%s: cleanup after %r failed: %s", operation, strategy.label, e
            )
