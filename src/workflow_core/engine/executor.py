"""
Node executor - invokes a single node with timeout, retries and isolation.

Every attempt receives freshly copied inputs and parameters, so a node can
never observe or corrupt data another node sees. Only failures a node marks
retryable (including timeouts) are retried, with exponential backoff.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Iterable

from ..core.exceptions import NodeExecutionError, NodeTimeoutError, WorkflowEngineError
from .data import DataCloneError, clone_items, clone_output_data, clone_port_data, clone_value
from .types import NodeData, NodeResult, NodeSpec

if TYPE_CHECKING:
    from ..core.config import Settings
    from ..nodes.base import BaseNode

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[Any]]


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff: min(base * factor ** (attempt - 1), cap)."""

    max_retries: int = 3
    base_delay: float = 1.0
    backoff_factor: float = 2.0
    max_delay: float = 30.0

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_retries=settings.max_retries,
            base_delay=settings.retry_base_delay,
            backoff_factor=settings.retry_backoff_factor,
            max_delay=settings.retry_max_delay,
        )

    def with_max_retries(self, max_retries: int | None) -> RetryPolicy:
        if max_retries is None or max_retries == self.max_retries:
            return self
        return RetryPolicy(
            max_retries=max_retries,
            base_delay=self.base_delay,
            backoff_factor=self.backoff_factor,
            max_delay=self.max_delay,
        )

    def calculate_delay(self, attempt: int) -> float:
        """Delay before retrying after failed attempt number `attempt` (1-based)."""
        delay = self.base_delay * (self.backoff_factor ** max(attempt - 1, 0))
        return min(delay, self.max_delay)


@dataclass
class NodeOutcome:
    """Terminal outcome of a node: success after some attempts, or exhausted failure."""

    node_id: str
    attempts: int
    result: NodeResult | None = None
    error: NodeExecutionError | None = None

    @property
    def success(self) -> bool:
        return self.result is not None and self.error is None


class NodeExecutor:
    """Runs one node to a terminal outcome."""

    def __init__(
        self,
        timeout: float = 30.0,
        retry_policy: RetryPolicy | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.timeout = timeout
        self.retry_policy = retry_policy or RetryPolicy()
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Settings) -> NodeExecutor:
        return cls(timeout=settings.node_timeout, retry_policy=RetryPolicy.from_settings(settings))

    async def execute(
        self,
        spec: NodeSpec,
        node: BaseNode,
        input_data: dict[str, list[NodeData]],
        output_ports: Iterable[str] = ("main",),
        workflow_settings: dict[str, Any] | None = None,
        abort: asyncio.Event | None = None,
    ) -> NodeOutcome:
        """
        Execute a node until it succeeds or its retries are exhausted.

        Disabled nodes are not invoked; their main input passes through to
        every output port. Once `abort` is set no further attempt is started
        and the last failure is returned.
        """
        if spec.disabled:
            items = input_data.get("main", [])
            logger.debug(f"Node {spec.id} is disabled, passing input through")
            return NodeOutcome(
                node_id=spec.id,
                attempts=0,
                result=NodeResult(output_data={port: clone_items(items) for port in output_ports}),
            )

        workflow_settings = workflow_settings or {}
        timeout = spec.timeout if spec.timeout is not None else workflow_settings.get("nodeTimeout")
        if timeout is None:
            timeout = self.timeout
        policy = self.retry_policy.with_max_retries(
            spec.max_retries if spec.max_retries is not None else workflow_settings.get("maxRetries")
        )

        attempt = 0
        while True:
            attempt += 1
            outcome = await self._attempt(spec, node, input_data, timeout)
            if isinstance(outcome, NodeResult):
                return NodeOutcome(node_id=spec.id, attempts=attempt, result=outcome)
            error = outcome

            if not error.retryable or attempt > policy.max_retries or _is_set(abort):
                if attempt > 1:
                    logger.warning(f"Node {spec.id} failed after {attempt} attempts: {error.message}")
                return NodeOutcome(node_id=spec.id, attempts=attempt, error=error)

            delay = policy.calculate_delay(attempt)
            logger.warning(
                f"Node {spec.id} attempt {attempt} failed ({error.code}: {error.message}), "
                f"retrying in {delay:g}s"
            )
            if await self._backoff(delay, abort):
                logger.info(f"Node {spec.id} retries abandoned, the batch was aborted")
                return NodeOutcome(node_id=spec.id, attempts=attempt, error=error)

    async def _backoff(self, delay: float, abort: asyncio.Event | None) -> bool:
        """Sleep before the next attempt; returns True if `abort` fired first."""
        if abort is None:
            await self._sleep(delay)
            return False
        try:
            await asyncio.wait_for(abort.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def _attempt(
        self,
        spec: NodeSpec,
        node: BaseNode,
        input_data: dict[str, list[NodeData]],
        timeout: float,
    ) -> NodeResult | NodeExecutionError:
        """Run a single attempt; returns the result or the normalized error."""
        try:
            inputs = clone_port_data(input_data)
            parameters = clone_value(spec.parameters)
            result = await asyncio.wait_for(node.execute(inputs, parameters), timeout=timeout)
        except asyncio.TimeoutError:
            return NodeTimeoutError(spec.id, timeout)
        except DataCloneError as e:
            return _unsupported_data(spec.id, e)
        except NodeExecutionError as e:
            return e.for_node(spec.id)
        except WorkflowEngineError as e:
            return NodeExecutionError(e.message, node_id=spec.id)
        except Exception as e:
            logger.debug(f"Node {spec.id} raised {type(e).__name__}", exc_info=True)
            return NodeExecutionError(f"{type(e).__name__}: {e}", node_id=spec.id)

        if not isinstance(result, NodeResult):
            return NodeExecutionError(
                f"Node returned {type(result).__name__} instead of a NodeResult", node_id=spec.id
            )
        if not result.success:
            error = result.error
            if isinstance(error, NodeExecutionError):
                return error.for_node(spec.id)
            message = error.message if error is not None else "Node reported failure"
            return NodeExecutionError(message, node_id=spec.id)

        try:
            result.output_data = clone_output_data(result.output_data)
        except DataCloneError as e:
            return _unsupported_data(spec.id, e)
        return result


def _unsupported_data(node_id: str, error: DataCloneError) -> NodeExecutionError:
    return NodeExecutionError(f"Unsupported node data: {error}", node_id=node_id, retryable=False)


def _is_set(event: asyncio.Event | None) -> bool:
    return event is not None and event.is_set()
