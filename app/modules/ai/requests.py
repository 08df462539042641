"""
Request Registry: tracks in-flight AI requests per (user, action).

- A second trigger of the same action while the first is outstanding is refused
  with RequestInFlight instead of running twice.
- cancel() stops an in-flight request; whoever awaits it gets RequestCancelled
  and the late result is never delivered.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Coroutine

from app.errors import RequestCancelled, RequestInFlight

logger = logging.getLogger(__name__)


@dataclass
class _Ticket:
    task: asyncio.Task
    cancelled: bool = False


class RequestRegistry:
    def __init__(self):
        self._inflight: dict[tuple[str, str], _Ticket] = {}

    def is_running(self, user_id: str, action: str) -> bool:
        return (user_id, action) in self._inflight

    def active(self, user_id: str) -> list[str]:
        return sorted(action for (uid, action) in self._inflight if uid == user_id)

    async def run(self, user_id: str, action: str, coro: Coroutine[Any, Any, Any]) -> Any:
        key = (user_id, action)
        if self.is_running(user_id, action):
            coro.close()
            raise RequestInFlight(f"'{action}' is already running; wait for it to finish or cancel it")

        ticket = _Ticket(task=asyncio.create_task(coro))
        self._inflight[key] = ticket
        try:
            return await ticket.task
        except asyncio.CancelledError:
            if ticket.cancelled:
                logger.info("Discarding cancelled '%s' request for user %s", action, user_id)
                raise RequestCancelled(f"'{action}' was cancelled") from None
            raise
        finally:
            if self._inflight.get(key) is ticket:
                del self._inflight[key]

    def cancel(self, user_id: str, action: str) -> bool:
        ticket = self._inflight.get((user_id, action))
        if ticket is None:
            return False
        ticket.cancelled = True
        ticket.task.cancel()
        return True

    async def cancel_all(self) -> None:
        tickets = list(self._inflight.values())
        for ticket in tickets:
            ticket.cancelled = True
            ticket.task.cancel()
        if tickets:
            await asyncio.gather(*(t.task for t in tickets), return_exceptions=True)
