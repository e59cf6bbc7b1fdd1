# engine.py

import logging
from collections import deque
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from config import EVENT_LOG_LIMIT
from errors import UnknownStrategyError

logger = logging.getLogger(__name__)


class AllocationStrategy(Enum):
    FIRST_FIT = "First-Fit"
    BEST_FIT = "Best-Fit"
    WORST_FIT = "Worst-Fit"

    @classmethod
    def parse(cls, name):
        """Resolve a member, its label or a command-line alias."""
        if isinstance(name, cls):
            return name
        key = str(name).strip().lower()
        for strategy, aliases in _STRATEGY_ALIASES.items():
            if key in aliases or key == strategy.value.lower():
                return strategy
        raise UnknownStrategyError(
            f"Unknown allocation algorithm '{name}' "
            f"(available: first_fit, best_fit, worst_fit)"
        )


_STRATEGY_ALIASES = {
    AllocationStrategy.FIRST_FIT: ("first_fit", "first", "ff"),
    AllocationStrategy.BEST_FIT: ("best_fit", "best", "bf"),
    AllocationStrategy.WORST_FIT: ("worst_fit", "worst", "wf"),
}


@dataclass
class MemorySegment:
    base_address: int
    size: int
    allocated: bool = False
    owner_id: Optional[int] = None

    @property
    def end_address(self):
        # inclusive
        return self.base_address + self.size - 1

    def __repr__(self):
        state = "A" if self.allocated else "F"
        return f"[{state}|{self.base_address}|{self.size}]"


@dataclass
class AllocationStats:
    attempts: int = 0
    successes: int = 0
    failures: int = 0

    @property
    def success_rate(self):
        if self.attempts == 0:
            return 0.0
        return 100.0 * self.successes / self.attempts


class AllocationStatus(Enum):
    OK = "ok"
    ZERO_SIZE = "zero_size"
    NO_SPACE = "no_space"


@dataclass(frozen=True)
class AllocationResult:
    status: AllocationStatus
    requested_size: int
    owner_id: Optional[int] = None
    base_address: Optional[int] = None

    def __bool__(self):
        return self.status is AllocationStatus.OK


@dataclass(frozen=True)
class FragmentationReport:
    capacity: int
    free_bytes: int
    allocated_bytes: int
    largest_free_block: int
    utilization: float
    external_fragmentation: float
    internal_fragmentation: float
    stats: AllocationStats = field(default_factory=AllocationStats)


class MemoryEngine:
    """Segment list allocator over one contiguous simulated address range.

    Segments stay sorted by base address and always partition
    ``[0, capacity)``; no two neighbouring segments are free once an
    operation returns.
    """

    def __init__(self, total_size=0):
        self.strategy = AllocationStrategy.FIRST_FIT
        self.event_log = deque(maxlen=EVENT_LOG_LIMIT)
        self.capacity = 0
        self.segments = []
        self.next_id = 1
        self.stats = AllocationStats()
        if total_size > 0:
            self.initialize(total_size)

    def initialize(self, total_size):
        self.capacity = total_size
        self.segments = [MemorySegment(0, total_size)] if total_size > 0 else []
        self.next_id = 1
        self.stats = AllocationStats()
        self.event_log.append(f"Memory pool initialized: {total_size} bytes")
        logger.debug("pool initialized with %d bytes", total_size)

    def reset(self):
        self.segments = []
        self.capacity = 0
        self.next_id = 1
        self.strategy = AllocationStrategy.FIRST_FIT
        self.stats = AllocationStats()
        self.event_log.append("Memory simulator has been reset")
        logger.debug("allocator reset")

    def set_strategy(self, strategy):
        self.strategy = AllocationStrategy.parse(strategy)
        self.event_log.append(f"Allocation strategy set to: {self.strategy.value}")

    # -----------------------------
    # Allocate Dispatcher
    # -----------------------------
    def allocate(self, req_size):
        self.stats.attempts += 1

        if req_size <= 0:
            self.stats.failures += 1
            self.event_log.append("Error: Cannot allocate zero bytes")
            return AllocationResult(AllocationStatus.ZERO_SIZE, req_size)

        finder = {
            AllocationStrategy.FIRST_FIT: self._first_fit,
            AllocationStrategy.BEST_FIT: self._best_fit,
            AllocationStrategy.WORST_FIT: self._worst_fit,
        }[self.strategy]
        index = finder(req_size)

        if index is None:
            self.stats.failures += 1
            self.event_log.append(
                f"Allocation of {req_size} bytes failed: insufficient space"
            )
            logger.info("allocation of %d bytes failed (%s)", req_size, self.strategy.value)
            return AllocationResult(AllocationStatus.NO_SPACE, req_size)

        segment = self._split_block(index, req_size)
        self.stats.successes += 1
        self.event_log.append(
            f"Allocated: ID={segment.owner_id} at 0x{segment.base_address:x} (size={req_size})"
        )
        return AllocationResult(
            AllocationStatus.OK, req_size, segment.owner_id, segment.base_address
        )

    # -----------------------------
    # Algorithms
    # -----------------------------
    def _first_fit(self, req):
        for i, block in enumerate(self.segments):
            if not block.allocated and block.size >= req:
                return i
        return None

    def _best_fit(self, req):
        best_index = None
        best_size = None

        for i, block in enumerate(self.segments):
            if block.allocated or block.size < req:
                continue
            if best_size is None or block.size < best_size:
                best_size = block.size
                best_index = i
        return best_index

    def _worst_fit(self, req):
        worst_index = None
        worst_size = -1

        for i, block in enumerate(self.segments):
            if not block.allocated and block.size >= req and block.size > worst_size:
                worst_size = block.size
                worst_index = i
        return worst_index

    # -----------------------------
    # Helpers
    # -----------------------------
    def _split_block(self, index, req_size):
        block = self.segments[index]

        if block.size > req_size:
            remainder = MemorySegment(block.base_address + req_size, block.size - req_size)
            block.size = req_size
            self.segments.insert(index + 1, remainder)

        block.allocated = True
        block.owner_id = self.next_id
        self.next_id += 1
        return block

    def deallocate(self, owner_id):
        for block in self.segments:
            if block.allocated and block.owner_id == owner_id:
                block.allocated = False
                block.owner_id = None
                self._coalesce()
                self.event_log.append(f"Freed: ID={owner_id}")
                return True

        self.event_log.append(f"Error: ID {owner_id} not found")
        logger.info("deallocate: owner id %s not found", owner_id)
        return False

    def _coalesce(self):
        i = 0
        while i < len(self.segments) - 1:
            current = self.segments[i]
            following = self.segments[i + 1]
            if (
                not current.allocated
                and not following.allocated
                and current.base_address + current.size == following.base_address
            ):
                current.size += following.size
                del self.segments[i + 1]
                # stay on i: the grown segment may touch the next one
                continue
            i += 1

    def layout(self):
        return [replace(segment) for segment in self.segments]

    # --------------------------------------
    # Fragmentation Metrics
    # --------------------------------------
    def fragmentation_report(self):
        free_blocks = [b.size for b in self.segments if not b.allocated]
        allocated_blocks = [b.size for b in self.segments if b.allocated]

        total_free = sum(free_blocks)
        total_alloc = sum(allocated_blocks)
        largest_free = max(free_blocks) if free_blocks else 0

        if total_free == 0:
            external_frag = 0.0
        else:
            external_frag = 100.0 * (total_free - largest_free) / total_free

        utilization = 100.0 * total_alloc / self.capacity if self.capacity else 0.0

        # Allocations are split to the exact size, nothing is wasted inside them
        internal_frag = 0.0

        return FragmentationReport(
            capacity=self.capacity,
            free_bytes=total_free,
            allocated_bytes=total_alloc,
            largest_free_block=largest_free,
            utilization=utilization,
            external_fragmentation=external_frag,
            internal_fragmentation=internal_frag,
            stats=replace(self.stats),
        )
