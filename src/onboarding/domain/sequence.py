"""Sequence allocation for human-readable display identifiers."""

import logging
from dataclasses import dataclass

from .exceptions import InternalError
from .ports import CounterRepository

logger = logging.getLogger(__name__)


@dataclass
class SequenceAllocator:
    """
    Hands out the next integer of a named counter.

    The increment itself is delegated to the repository as one atomic
    upsert; this class never reads the current value.
    """

    counters: CounterRepository

    def next(self, sequence_name: str) -> int:
        """
        Return the next value of ``sequence_name`` (1 when it did not exist).

        Raises:
            InternalError: the counter store is unavailable
        """
        try:
            value = self.counters.increment(sequence_name)
        except Exception as e:
            logger.error("Sequence %s unavailable: %s", sequence_name, e)
            raise InternalError(f"Could not allocate identifier from sequence '{sequence_name}'") from e
        logger.debug("Sequence %s advanced to %d", sequence_name, value)
        return value
