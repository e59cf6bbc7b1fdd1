# commands.py

import argparse
import logging
import sys

from cache import CacheHierarchy
from config import cache_geometry, load_config
from engine import AllocationStatus, MemoryEngine
from errors import SimulatorError
from utils import format_percent, format_range

logger = logging.getLogger(__name__)

PROMPT = "memsim> "

BANNER = """\
==========================================================
        Advanced Memory Management Simulator

  Features:
  - Dynamic Memory Allocation (First/Best/Worst Fit)
  - Multi-level Cache Simulation (L1/L2)
  - Fragmentation & Hit Ratio Analytics
  - Interactive Command Interface
==========================================================
Type 'help' to see available commands
Type 'exit' to quit the simulator
"""

HELP = """\
--- Available Commands ---
init <size>                 - Initialize memory pool with specified size
strategy <algorithm>        - Set allocation strategy (first_fit/best_fit/worst_fit)
alloc <size>                - Allocate memory block of specified size
free <id>                   - Deallocate memory block with owner ID
display                     - Show current memory layout
stats                       - Display memory statistics and analysis
reset                       - Reset the memory simulator
cache_init <l1> <b1> <l2> <b2>
                            - Rebuild the cache hierarchy (sizes in bytes)
access <address>            - Access an address through L1/L2
cache_stats                 - Display cache hit/miss statistics
cache_info                  - Display cache configuration
flush                       - Invalidate every cache line
cache_reset                 - Rebuild caches and clear their statistics
help                        - Show this help message
exit                        - Quit the simulator
--------------------------"""


def _parse_int(text):
    """Decimal, or hex with a 0x prefix since addresses are shown that way."""
    digits = text[1:] if text[:1] in "+-" else text
    if digits[:2].lower() == "0x":
        return int(text, 16)
    return int(text, 10)


class CommandProcessor:
    """Line-oriented front end over a MemoryEngine and a CacheHierarchy."""

    def __init__(self, memory=None, caches=None, out=None):
        self.memory = memory if memory is not None else MemoryEngine()
        self.caches = caches if caches is not None else CacheHierarchy()
        self.out = out if out is not None else sys.stdout
        self.running = True

        self._handlers = {}
        for names, handler in (
            (("init", "initialize"), self.do_init),
            (("strategy", "set"), self.do_strategy),
            (("alloc", "malloc"), self.do_alloc),
            (("free", "dealloc"), self.do_free),
            (("display", "dump", "show"), self.do_display),
            (("stats", "statistics", "analyze"), self.do_stats),
            (("reset", "clear"), self.do_reset),
            (("cache_init",), self.do_cache_init),
            (("access", "cache"), self.do_access),
            (("cache_stats",), self.do_cache_stats),
            (("cache_info",), self.do_cache_info),
            (("flush",), self.do_flush),
            (("cache_reset",), self.do_cache_reset),
            (("help", "?"), self.do_help),
            (("exit", "quit", "bye"), self.do_exit),
        ):
            for name in names:
                self._handlers[name] = handler

    def write(self, text=""):
        print(text, file=self.out)

    # -----------------------------
    # Dispatch
    # -----------------------------
    def process(self, line):
        """Execute one command line. Returns False once the session has ended."""
        tokens = line.split()
        if not tokens:
            return self.running

        command, args = tokens[0], tokens[1:]
        handler = self._handlers.get(command)
        if handler is None:
            self.write(f"Unknown command: '{command}'. Type 'help' for available commands.")
            return self.running

        try:
            handler(args)
        except SimulatorError as e:
            logger.debug("command %r failed: %s", command, e)
            self.write(f"Error: {e}")
        return self.running

    def run(self, lines, interactive=False):
        for line in lines:
            if not self.process(line):
                break
            if interactive:
                self.out.write(PROMPT)
                self.out.flush()

    def _int_arg(self, args, usage, example, what):
        if not args:
            self.write(f"Usage: {usage}")
            self.write(f"Example: {example}")
            return None
        try:
            return _parse_int(args[0])
        except ValueError:
            self.write(f"Error: Invalid {what} format")
            return None

    # -----------------------------
    # Memory allocator commands
    # -----------------------------
    def do_init(self, args):
        size = self._int_arg(args, "init <memory_size>", "init 1024", "memory size")
        if size is None:
            return
        if size <= 0:
            self.write("Error: Memory size must be greater than 0")
            return
        self.memory.initialize(size)
        self.write(f"Memory pool initialized: {size} bytes")

    def do_strategy(self, args):
        if not args:
            self.write("Usage: strategy <algorithm>")
            self.write("Available algorithms: first_fit, best_fit, worst_fit")
            return
        self.memory.set_strategy(args[0])
        self.write(f"Allocation strategy set to: {self.memory.strategy.value}")

    def do_alloc(self, args):
        size = self._int_arg(args, "alloc <size>", "alloc 256", "allocation size")
        if size is None:
            return
        if size < 0:
            self.write("Error: Allocation size must not be negative")
            return
        result = self.memory.allocate(size)
        if result:
            self.write(
                f"Memory allocated: ID={result.owner_id} at address=0x{result.base_address:x} "
                f"(size={size})"
            )
        elif result.status is AllocationStatus.ZERO_SIZE:
            self.write("Error: Cannot allocate zero bytes")
        else:
            self.write("Memory allocation failed: Insufficient space")

    def do_free(self, args):
        owner_id = self._int_arg(args, "free <id>", "free 3", "owner ID")
        if owner_id is None:
            return
        if self.memory.deallocate(owner_id):
            self.write(f"Memory deallocated for ID={owner_id}")
        else:
            self.write(f"Error: ID {owner_id} not found")

    def do_display(self, args):
        self.write("--- Current Memory Layout ---")
        for segment in self.memory.layout():
            if segment.allocated:
                state = f"ALLOCATED (ID={segment.owner_id}, size={segment.size})"
            else:
                state = f"FREE (size={segment.size})"
            self.write(f"{format_range(segment)} {state}")
        self.write("-----------------------------")

    def do_stats(self, args):
        report = self.memory.fragmentation_report()
        stats = report.stats
        self.write("--- Memory Analysis Report ---")
        self.write(f"Total memory capacity: {report.capacity} bytes")
        self.write(f"Allocated memory: {report.allocated_bytes} bytes")
        self.write(f"Free memory: {report.free_bytes} bytes")
        self.write(f"Largest free block: {report.largest_free_block} bytes")
        self.write(f"Memory utilization: {format_percent(report.utilization)}")
        self.write(f"External fragmentation: {format_percent(report.external_fragmentation)}")
        self.write(
            f"Internal fragmentation: {format_percent(report.internal_fragmentation)} "
            f"(exact allocation)"
        )
        self.write("--- Memory Performance Statistics ---")
        self.write(f"Total allocation requests: {stats.attempts}")
        self.write(f"Successful allocations: {stats.successes}")
        self.write(f"Failed allocations: {stats.failures}")
        self.write(f"Success rate: {format_percent(stats.success_rate)}")

    def do_reset(self, args):
        self.memory.reset()
        self.write("Memory simulator has been reset")

    # -----------------------------
    # Cache commands
    # -----------------------------
    def do_cache_init(self, args):
        if len(args) < 4:
            self.write("Usage: cache_init <l1_size> <l1_block> <l2_size> <l2_block>")
            self.write("Example: cache_init 1024 32 8192 64")
            return
        try:
            sizes = [_parse_int(a) for a in args[:4]]
        except ValueError:
            self.write("Error: Invalid cache size format")
            return
        self.caches.initialize(*sizes)
        self.write("Cache hierarchy successfully initialized")

    def do_access(self, args):
        address = self._int_arg(args, "access <address>", "access 0x40", "address")
        if address is None:
            return
        if address < 0:
            self.write("Error: Address must be non-negative")
            return
        hit = self.caches.access(address)
        self.write(f"Address 0x{address:x}: {'HIT' if hit else 'MISS'}")

    def do_cache_stats(self, args):
        stats = self.caches.statistics()
        self.write("--- Cache Performance Statistics ---")
        for name in ("l1", "l2"):
            m = stats[name]
            self.write(f"{name.upper()} Cache Performance:")
            self.write(f"  Total accesses: {m['total_accesses']}")
            self.write(f"  Cache hits: {m['hits']}")
            self.write(f"  Cache misses: {m['misses']}")
            self.write(f"  Hit ratio: {format_percent(m['hit_ratio'])}")
            self.write(f"  Miss ratio: {format_percent(m['miss_ratio'])}")
        self.write(f"Combined hit ratio: {format_percent(stats['combined_hit_ratio'])}")
        self.write("-----------------------------------")

    def do_cache_info(self, args):
        for name, info in self.caches.info().items():
            self.write(f"{name.upper()} Cache Configuration:")
            self.write(f"  Size: {info['capacity']} bytes")
            self.write(f"  Block size: {info['block_size']} bytes")
            self.write(f"  Number of blocks: {info['block_count']}")
            self.write(f"  Valid blocks: {info['valid_blocks']}/{info['block_count']}")

    def do_flush(self, args):
        self.caches.flush_all()
        self.write("All caches flushed")

    def do_cache_reset(self, args):
        if self.caches.reset_statistics():
            self.write("Cache statistics reset")
        else:
            self.write("Cache hierarchy not initialized")

    # -----------------------------
    # Session
    # -----------------------------
    def do_help(self, args):
        self.write(HELP)

    def do_exit(self, args):
        self.write("Goodbye!")
        self.running = False


def build_parser():
    parser = argparse.ArgumentParser(
        prog="memsim",
        description="Memory allocation and cache hierarchy simulator",
    )
    parser.add_argument("--config", help="JSON file overriding the default configuration")
    parser.add_argument("--script", help="read commands from this file instead of stdin")
    parser.add_argument("--quiet", action="store_true", help="do not print the banner")
    parser.add_argument("--log-level", help="logging level (default from config)")
    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    cfg = load_config(args.config)

    level = args.log_level or cfg["logging"]["level"]
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    memory = MemoryEngine(cfg["memory"]["pool_size"])
    memory.set_strategy(cfg["memory"]["strategy"])
    caches = CacheHierarchy()
    processor = CommandProcessor(memory, caches)

    if not args.quiet:
        processor.write(BANNER)

    try:
        caches.initialize(*cache_geometry(cfg))
        processor.write("Default cache hierarchy loaded.")
    except SimulatorError as e:
        processor.write(f"Error initializing cache hierarchy: {e}")

    if args.script:
        with open(args.script, "r") as f:
            processor.run(f)
    else:
        interactive = sys.stdin.isatty()
        if interactive:
            sys.stdout.write(PROMPT)
            sys.stdout.flush()
        processor.run(sys.stdin, interactive=interactive)
    return 0


if __name__ == "__main__":
    sys.exit(main())
