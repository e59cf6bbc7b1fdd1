import io
import json
import os
import tempfile
import unittest
from unittest import mock

import commands
from cache import CacheHierarchy
from commands import CommandProcessor
from engine import AllocationStrategy


class CommandProcessorTests(unittest.TestCase):
    def setUp(self) -> None:
        self.out = io.StringIO()
        self.caches = CacheHierarchy()
        self.caches.initialize(64, 16, 256, 16)
        self.processor = CommandProcessor(caches=self.caches, out=self.out)

    def run_lines(self, *lines):
        self.processor.run(lines)
        return self.out.getvalue()

    def test_allocation_session(self) -> None:
        output = self.run_lines(
            "init 1000", "strategy first_fit", "alloc 200", "alloc 100", "free 1", "display",
        )
        self.assertIn("Memory pool initialized: 1000 bytes", output)
        self.assertIn("Memory allocated: ID=1 at address=0x0 (size=200)", output)
        self.assertIn("Memory allocated: ID=2 at address=0xc8 (size=100)", output)
        self.assertIn("Memory deallocated for ID=1", output)
        self.assertIn("[0x0000 - 0x00c7] FREE (size=200)", output)
        self.assertIn("[0x00c8 - 0x012b] ALLOCATED (ID=2, size=100)", output)
        self.assertIn("[0x012c - 0x03e7] FREE (size=700)", output)

    def test_aliases(self) -> None:
        output = self.run_lines("initialize 64", "set bf", "malloc 8", "dealloc 8", "analyze")
        self.assertIs(self.processor.memory.strategy, AllocationStrategy.BEST_FIT)
        self.assertIn("Error: ID 8 not found", output)
        self.assertIn("Total allocation requests: 1", output)

    def test_failures_are_reported(self) -> None:
        output = self.run_lines("init 100", "alloc 150", "alloc 0", "stats")
        self.assertIn("Memory allocation failed: Insufficient space", output)
        self.assertIn("Error: Cannot allocate zero bytes", output)
        self.assertIn("Failed allocations: 2", output)
        self.assertIn("Success rate: 0.00%", output)

    def test_leading_zero_is_decimal(self) -> None:
        output = self.run_lines("init 0100", "alloc 010", "access 0X10")
        self.assertIn("Memory pool initialized: 100 bytes", output)
        self.assertIn("Memory allocated: ID=1 at address=0x0 (size=10)", output)
        self.assertIn("Address 0x10: MISS", output)

    def test_usage_and_bad_arguments(self) -> None:
        output = self.run_lines("init", "init abc", "init 0", "alloc", "strategy next_fit", "bogus")
        self.assertIn("Usage: init <memory_size>", output)
        self.assertIn("Error: Invalid memory size format", output)
        self.assertIn("Error: Memory size must be greater than 0", output)
        self.assertIn("Usage: alloc <size>", output)
        self.assertIn("Error: Unknown allocation algorithm 'next_fit'", output)
        self.assertIn("Unknown command: 'bogus'. Type 'help' for available commands.", output)

    def test_cache_commands(self) -> None:
        output = self.run_lines("access 0", "cache 0", "access 0x40", "cache_stats", "cache_info")
        self.assertIn("Address 0x0: MISS", output)
        self.assertIn("Address 0x0: HIT", output)
        self.assertIn("Address 0x40: MISS", output)
        self.assertIn("L1 Cache Performance:", output)
        self.assertIn("Combined hit ratio: 33.33%", output)
        self.assertIn("Valid blocks: 1/4", output)

    def test_cache_reinitialization_errors(self) -> None:
        output = self.run_lines("cache_init 64 0 256 16", "access 0", "cache_reset")
        self.assertIn("Error: Block size cannot be zero", output)
        self.assertIn("Error: Cache hierarchy not initialized", output)
        self.assertIn("Cache hierarchy not initialized", output.splitlines()[-1])

    def test_flush_and_reset(self) -> None:
        self.run_lines("access 0", "flush", "cache_reset")
        self.assertIn("All caches flushed", self.out.getvalue())
        self.assertEqual(self.caches.l1.metrics.total_accesses, 0)

    def test_exit_stops_processing(self) -> None:
        output = self.run_lines("help", "exit", "init 10")
        self.assertIn("--- Available Commands ---", output)
        self.assertIn("Goodbye!", output)
        self.assertFalse(self.processor.running)
        self.assertEqual(self.processor.memory.capacity, 0)

    def test_blank_line_is_ignored(self) -> None:
        self.assertTrue(self.processor.process("   "))
        self.assertEqual(self.out.getvalue(), "")


class MainTests(unittest.TestCase):
    def test_script_run_with_config(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            cfg_path = os.path.join(tmp, "config.json")
            with open(cfg_path, "w") as f:
                json.dump({"memory": {"strategy": "worst_fit"}}, f)
            script = os.path.join(tmp, "session.txt")
            with open(script, "w") as f:
                f.write("init 1024\nalloc 100\naccess 0\nexit\n")

            out = io.StringIO()
            with mock.patch("sys.stdout", out):
                code = commands.main(["--config", cfg_path, "--script", script])

        self.assertEqual(code, 0)
        output = out.getvalue()
        self.assertIn("Advanced Memory Management Simulator", output)
        self.assertIn("Default cache hierarchy loaded.", output)
        self.assertIn("Memory allocated: ID=1", output)
        self.assertIn("Address 0x0: MISS", output)
        self.assertIn("Goodbye!", output)

    def test_quiet_reads_stdin(self) -> None:
        out = io.StringIO()
        with mock.patch("sys.stdout", out), mock.patch("sys.stdin", io.StringIO("cache_info\n")):
            commands.main(["--quiet"])
        output = out.getvalue()
        self.assertNotIn("Advanced Memory Management Simulator", output)
        self.assertIn("Number of blocks: 32", output)
        self.assertIn("Number of blocks: 128", output)

    def test_configured_pool_is_ready_without_init(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            cfg_path = os.path.join(tmp, "config.json")
            with open(cfg_path, "w") as f:
                json.dump({"memory": {"pool_size": 512}}, f)
            out = io.StringIO()
            stdin = io.StringIO("alloc 600\nalloc 500\nstats\n")
            with mock.patch("sys.stdout", out), mock.patch("sys.stdin", stdin):
                commands.main(["--quiet", "--config", cfg_path])
        output = out.getvalue()
        self.assertIn("Memory allocation failed: Insufficient space", output)
        self.assertIn("Memory allocated: ID=1 at address=0x0 (size=500)", output)
        self.assertIn("Total memory capacity: 512 bytes", output)


if __name__ == "__main__":
    unittest.main()
