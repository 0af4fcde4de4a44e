"""
Channel Adapter

Unbuffered rendezvous channels connecting the pipeline stages, plus the
shared cancel token every stage observes.

A send completes only once a receiver has taken the item, so no stage can
run ahead of its slowest consumer by more than one in-flight element.
"""

import asyncio
import logging
from collections import deque
from typing import Any, Deque, Generic, Optional, Set, Tuple, TypeVar

from dataflow.errors import ChannelClosed, PipelineCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CancelToken:
    """
    Shared cancellation signal.

    Channels register their pending waiters with the token. Cancelling the
    token fails every pending waiter with PipelineCancelled, and every later
    channel operation raises it immediately.
    """

    def __init__(self):
        self._cancelled = False
        self._reason: Optional[str] = None
        self._waiters: Set[asyncio.Future] = set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Fire the token. Later calls are no-ops."""
        if self._cancelled:
            return

        self._cancelled = True
        self._reason = reason
        logger.info(f"Cancel token fired: {reason}")

        waiters = list(self._waiters)
        self._waiters.clear()
        for waiter in waiters:
            if not waiter.done():
                waiter.set_exception(PipelineCancelled(reason))

    def raise_if_cancelled(self) -> None:
        if self._cancelled:
            raise PipelineCancelled(self._reason or "cancelled")

    def watch(self, waiter: asyncio.Future) -> None:
        """Fail ``waiter`` with PipelineCancelled if the token fires first"""
        if self._cancelled:
            waiter.set_exception(PipelineCancelled(self._reason or "cancelled"))
            return
        self._waiters.add(waiter)
        waiter.add_done_callback(self._waiters.discard)


class RendezvousChannel(Generic[T]):
    """
    Unbuffered single-item handoff between two pipeline stages.

    Example usage:
        token = CancelToken()
        channel = RendezvousChannel("filtered", token)

        # producer
        await channel.send(trade)
        channel.close()

        # consumer
        async for trade in channel:
            ...
    """

    def __init__(self, name: str, token: Optional[CancelToken] = None):
        self.name = name
        self.token = token or CancelToken()
        self._closed = False
        self._receivers: Deque[asyncio.Future] = deque()
        self._senders: Deque[Tuple[asyncio.Future, Any]] = deque()

    @property
    def closed(self) -> bool:
        return self._closed

    async def send(self, item: T) -> None:
        """
        Hand ``item`` to a receiver, waiting until one takes it.

        Raises:
            PipelineCancelled: If the cancel token fired
            ChannelClosed: If the channel is closed
        """
        self.token.raise_if_cancelled()
        if self._closed:
            raise ChannelClosed(f"Send on closed channel '{self.name}'")

        while self._receivers:
            receiver = self._receivers.popleft()
            if not receiver.done():
                receiver.set_result(item)
                return

        ack = asyncio.get_running_loop().create_future()
        self.token.watch(ack)
        self._senders.append((ack, item))
        await ack

    async def receive(self) -> T:
        """
        Take the next item, waiting for a sender.

        Raises:
            PipelineCancelled: If the cancel token fired
            ChannelClosed: If the channel is closed and no sender is pending
        """
        self.token.raise_if_cancelled()

        while self._senders:
            ack, item = self._senders.popleft()
            if not ack.done():
                ack.set_result(None)
                return item

        if self._closed:
            raise ChannelClosed(f"Channel '{self.name}' is closed")

        receiver = asyncio.get_running_loop().create_future()
        self.token.watch(receiver)
        self._receivers.append(receiver)
        return await receiver

    def close(self) -> None:
        """Close the channel. Pending receivers and senders see ChannelClosed."""
        if self._closed:
            return

        self._closed = True
        logger.debug(f"Channel '{self.name}' closed")

        while self._receivers:
            receiver = self._receivers.popleft()
            if not receiver.done():
                receiver.set_exception(ChannelClosed(f"Channel '{self.name}' is closed"))

        while self._senders:
            ack, _ = self._senders.popleft()
            if not ack.done():
                ack.set_exception(ChannelClosed(f"Send on closed channel '{self.name}'"))

    def __aiter__(self) -> "RendezvousChannel[T]":
        return self

    async def __anext__(self) -> T:
        try:
            return await self.receive()
        except ChannelClosed:
            raise StopAsyncIteration
