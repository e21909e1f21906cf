"""
Off-thread dispatch for calculate_decision().

Requests carry a monotonically increasing id; a response is applied only if
its id matches the latest id issued. A superseded computation is not
cancelled: it runs to completion and its result is dropped.

    dispatcher = DecisionDispatcher()
    result = await dispatcher.decide(decision_input)   # None if superseded
"""

from __future__ import annotations

import asyncio
import functools
import logging
from collections.abc import Mapping
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any

from blackjack_advisor.decision import DecisionInput, DecisionResult, calculate_decision

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DecisionRequest:
    id: int
    input: DecisionInput

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DecisionRequest":
        return cls(id=int(data["id"]), input=DecisionInput.from_dict(data["input"]))


@dataclass(frozen=True)
class DecisionResponse:
    id: int
    result: DecisionResult

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "result": self.result.to_dict()}


async def handle_request(
    request: DecisionRequest,
    executor: Executor | None = None,
) -> DecisionResponse:
    """Run one request off the event loop and wrap the result with its id.

    Args:
        request:  The tagged input.
        executor: Executor to run in; None uses the loop's default thread pool.
    """
    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(
        executor, functools.partial(calculate_decision, request.input)
    )
    return DecisionResponse(request.id, result)


class DecisionDispatcher:
    """Issues request ids and keeps only the response to the latest one."""

    def __init__(self, executor: Executor | None = None) -> None:
        self.executor = executor
        self.latest_id = 0

    def next_request(self, decision_input: DecisionInput) -> DecisionRequest:
        self.latest_id += 1
        return DecisionRequest(self.latest_id, decision_input)

    def accept(self, response: DecisionResponse) -> DecisionResult | None:
        """Return the response's result if it is current, else None."""
        if response.id != self.latest_id:
            logger.debug(
                "discarding stale response %d (latest is %d)", response.id, self.latest_id
            )
            return None
        return response.result

    async def decide(self, decision_input: DecisionInput) -> DecisionResult | None:
        """Submit an input and wait; None if a newer input arrived meanwhile."""
        request = self.next_request(decision_input)
        response = await handle_request(request, self.executor)
        return self.accept(response)
