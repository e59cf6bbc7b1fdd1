"""
Cache Simulation Engine — Direct-Mapped Levels & Two-Level Hierarchy

Models a single direct-mapped cache level with FIFO line replacement and an
L1/L2 hierarchy built from two such levels. Only address bookkeeping is
simulated: no data is ever moved.
"""

# =============================================================================
# IMPORTS
# =============================================================================

import logging
from collections import deque                # deque for FIFO queue implementation
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Tuple

from config import EVENT_LOG_LIMIT
from errors import CacheConfigError, CacheNotInitializedError

logger = logging.getLogger(__name__)


# =============================================================================
# CORE DATA STRUCTURES
# =============================================================================

@dataclass
class CacheBlock:
    """
    A single cache line.

    Attributes:
        valid (bool): True once the line holds a block
        tag (int): Upper address bits identifying the cached region
        stored_address (int): The address whose miss loaded this line
    """
    valid: bool = False
    tag: int = 0
    stored_address: int = 0

    def invalidate(self):
        """Return the line to its initial, empty state."""
        self.valid = False
        self.tag = 0
        self.stored_address = 0


@dataclass
class CacheMetrics:
    """
    Running access counters for one cache level.

    Ratios are expressed in percent and are 0.0 before the first access.
    """
    total_accesses: int = 0
    hits: int = 0
    misses: int = 0

    def record_hit(self):
        self.total_accesses += 1
        self.hits += 1

    def record_miss(self):
        self.total_accesses += 1
        self.misses += 1

    @property
    def hit_ratio(self) -> float:
        return (100.0 * self.hits / self.total_accesses) if self.total_accesses else 0.0

    @property
    def miss_ratio(self) -> float:
        return (100.0 * self.misses / self.total_accesses) if self.total_accesses else 0.0

    def as_dict(self) -> Dict[str, float]:
        return {
            "total_accesses": self.total_accesses,
            "hits": self.hits,
            "misses": self.misses,
            "hit_ratio": round(self.hit_ratio, 2),
            "miss_ratio": round(self.miss_ratio, 2),
        }


# =============================================================================
# CACHE LEVEL - Direct-Mapped with FIFO Replacement
# =============================================================================

class CacheLevel:
    """
    A fixed-capacity direct-mapped cache.

    Each address maps to exactly one slot, so a conflict miss evicts the
    current occupant of that slot. The load-order queue is still kept so the
    replacement bookkeeping carries over to set-associative variants.

    Attributes:
        capacity (int): Cache size in bytes
        block_size (int): Line size in bytes
        block_count (int): Number of lines (capacity // block_size)
        blocks (List[CacheBlock]): The line array, indexed by slot
        fifo_queue (deque): Slot indices in load order, oldest on the left
        metrics (CacheMetrics): Hit/miss counters
    """

    def __init__(self, capacity: int, block_size: int):
        """
        Build an empty cache level.

        Args:
            capacity (int): Total size in bytes
            block_size (int): Line size in bytes

        Raises:
            CacheConfigError: If block_size is zero or capacity holds no block
        """
        if block_size <= 0:
            raise CacheConfigError("Block size cannot be zero")
        if capacity < block_size:
            raise CacheConfigError("Cache size must be at least one block size")

        self.capacity = capacity
        self.block_size = block_size
        self.block_count = capacity // block_size

        self.blocks: List[CacheBlock] = [CacheBlock() for _ in range(self.block_count)]
        self.fifo_queue: Deque[int] = deque()
        self.metrics = CacheMetrics()

        logger.debug(
            "cache level built: %d bytes, %d-byte blocks, %d blocks",
            capacity, block_size, self.block_count,
        )

    # =========================================================================
    # ADDRESS DECOMPOSITION
    # =========================================================================

    def decompose(self, address: int) -> Tuple[int, int]:
        """
        Split an address into its (slot index, tag) pair.

        Raises:
            ValueError: If the address is negative
        """
        if address < 0:
            raise ValueError(f"Address must be non-negative, got {address}")
        index = (address // self.block_size) % self.block_count
        tag = address // (self.block_size * self.block_count)
        return index, tag

    # =========================================================================
    # ACCESS
    # =========================================================================

    def access(self, address: int) -> bool:
        """
        Look up an address, loading it on a miss.

        Args:
            address (int): Byte address to access

        Returns:
            bool: True on a hit, False on a miss
        """
        index, tag = self.decompose(address)
        block = self.blocks[index]

        # ----- HIT -----
        if block.valid and block.tag == tag:
            self.metrics.record_hit()
            return True

        # ----- MISS -----
        self.metrics.record_miss()

        if block.valid:
            self._evict(index)

        block.valid = True
        block.tag = tag
        block.stored_address = address
        self.fifo_queue.append(index)
        return False

    def _evict(self, index: int):
        """
        Invalidate the oldest line loaded into ``index``.

        A direct-mapped slot holds one line, so that is its current occupant.
        Its ledger entry is dropped wherever it sits in the load order.
        """
        self.fifo_queue.remove(index)
        logger.debug("evicting slot %d (tag %d)", index, self.blocks[index].tag)
        self.blocks[index].invalidate()

    # =========================================================================
    # MAINTENANCE & INSPECTION
    # =========================================================================

    def flush(self):
        """Invalidate every line and forget load order. Metrics are kept."""
        for block in self.blocks:
            block.invalidate()
        self.fifo_queue.clear()

    def info(self) -> Dict[str, int]:
        return {
            "capacity": self.capacity,
            "block_size": self.block_size,
            "block_count": self.block_count,
            "valid_blocks": sum(1 for b in self.blocks if b.valid),
        }


# =============================================================================
# CACHE HIERARCHY - L1 + L2
# =============================================================================

class CacheHierarchy:
    """
    Two cache levels queried in order, L1 then L2.

    An L2 hit counts as an overall hit but does not promote the block into
    L1. Main memory behind L2 is not modelled.
    """

    def __init__(self):
        self.l1: Optional[CacheLevel] = None
        self.l2: Optional[CacheLevel] = None
        self.initialized = False
        self.event_log: Deque[str] = deque(maxlen=EVENT_LOG_LIMIT)

    def initialize(self, l1_capacity: int, l1_block_size: int,
                   l2_capacity: int, l2_block_size: int):
        """
        (Re)build both levels.

        Both levels are constructed before either is installed, so a failure
        leaves the hierarchy uninitialized rather than half built.

        Raises:
            CacheConfigError: If either level's geometry is invalid
        """
        try:
            l1 = CacheLevel(l1_capacity, l1_block_size)
            l2 = CacheLevel(l2_capacity, l2_block_size)
        except CacheConfigError as e:
            self.l1 = None
            self.l2 = None
            self.initialized = False
            self.event_log.append(f"Error initializing cache hierarchy: {e}")
            logger.warning("cache hierarchy initialization failed: %s", e)
            raise

        self.l1, self.l2 = l1, l2
        self.initialized = True
        self.event_log.append(
            f"Cache hierarchy initialized: L1={l1_capacity}B/{l1_block_size}B "
            f"L2={l2_capacity}B/{l2_block_size}B"
        )

    def _require_initialized(self):
        if not self.initialized:
            raise CacheNotInitializedError("Cache hierarchy not initialized")

    def access(self, address: int) -> bool:
        """
        Access an address through the hierarchy.

        Returns:
            bool: True if either level hit, False if both missed

        Raises:
            CacheNotInitializedError: If initialize() has not succeeded
        """
        self._require_initialized()

        if self.l1.access(address):
            self.event_log.append(f"L1 hit: 0x{address:x}")
            return True

        if self.l2.access(address):
            self.event_log.append(f"L1 miss, L2 hit: 0x{address:x}")
            return True

        self.event_log.append(f"Miss: 0x{address:x} (main memory)")
        return False

    def statistics(self) -> Dict[str, object]:
        """
        Per-level metrics plus the combined hit ratio.

        The combined ratio divides both levels' hits by L1's access count;
        every request reaches L1, so that count is the number of requests.
        """
        self._require_initialized()

        l1_metrics = self.l1.metrics
        l2_metrics = self.l2.metrics
        combined = 0.0
        if l1_metrics.total_accesses > 0:
            combined = 100.0 * l1_metrics.hits / l1_metrics.total_accesses
            combined += 100.0 * l2_metrics.hits / l1_metrics.total_accesses

        return {
            "l1": l1_metrics.as_dict(),
            "l2": l2_metrics.as_dict(),
            "combined_hit_ratio": round(combined, 2),
        }

    def info(self) -> Dict[str, Dict[str, int]]:
        self._require_initialized()
        return {"l1": self.l1.info(), "l2": self.l2.info()}

    def flush_all(self):
        self._require_initialized()
        self.l1.flush()
        self.l2.flush()
        self.event_log.append("All caches flushed")

    def reset_statistics(self) -> bool:
        """
        Rebuild both levels from their current geometry.

        Returns:
            bool: False (and nothing happens) when uninitialized
        """
        if not self.initialized:
            return False
        self.initialize(self.l1.capacity, self.l1.block_size,
                        self.l2.capacity, self.l2.block_size)
        self.event_log.append("Cache statistics reset")
        return True
