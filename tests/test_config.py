import json
import os
import tempfile
import unittest

from config import DEFAULT_CONFIG, cache_geometry, load_config


class ConfigTests(unittest.TestCase):
    def test_defaults(self) -> None:
        cfg = load_config()
        self.assertEqual(cache_geometry(cfg), (1024, 32, 8192, 64))
        cfg["cache"]["l1"]["capacity"] = 1
        self.assertEqual(DEFAULT_CONFIG["cache"]["l1"]["capacity"], 1024)

    def test_file_overrides_are_merged(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "config.json")
            with open(path, "w") as f:
                json.dump({"cache": {"l2": {"capacity": 4096}}, "logging": {"level": "DEBUG"}}, f)
            cfg = load_config(path)
        self.assertEqual(cache_geometry(cfg), (1024, 32, 4096, 64))
        self.assertEqual(cfg["logging"]["level"], "DEBUG")
        self.assertEqual(cfg["memory"]["strategy"], "first_fit")

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_config("/nonexistent/memsim.json")


if __name__ == "__main__":
    unittest.main()
