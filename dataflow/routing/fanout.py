"""
Fanout

Replicates one stream to an ordered list of branches in lock-step.
An item counts as delivered only once every branch has taken it.
"""

import logging
from typing import Generic, List, Sequence, TypeVar

from dataflow.adapters.channel import RendezvousChannel
from dataflow.errors import PipelineCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Fanout(Generic[T]):
    """Synchronous broadcast barrier between the filter and the aggregators"""

    def __init__(self, source: RendezvousChannel[T], outputs: Sequence[RendezvousChannel[T]]):
        if not outputs:
            raise ValueError("Fanout needs at least one output")
        self.source = source
        self.outputs: List[RendezvousChannel[T]] = list(outputs)
        self.items_delivered = 0

    async def run(self) -> None:
        """Forward every item to all outputs, then close them"""
        logger.info(f"Fanout started: {[out.name for out in self.outputs]}")

        try:
            async for item in self.source:
                for output in self.outputs:
                    await output.send(item)
                self.items_delivered += 1
        except PipelineCancelled as e:
            logger.info(f"Fanout stopped: {e}")
        finally:
            for output in self.outputs:
                output.close()
            logger.info(f"Fanout finished: {self.items_delivered} items delivered")
