# config.py

import copy
import json

# Entries kept per engine event_log
EVENT_LOG_LIMIT = 500

DEFAULT_CONFIG = {
    "memory": {
        "pool_size": 1024,
        "strategy": "first_fit",
    },
    "cache": {
        "l1": {"capacity": 1024, "block_size": 32},
        "l2": {"capacity": 8192, "block_size": 64},
    },
    "logging": {
        "level": "WARNING",
    },
}


def _merge(base, override):
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(path=None):
    """Return the defaults, overlaid with the JSON file at ``path`` if given."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    if path is None:
        return cfg
    with open(path, "r") as f:
        return _merge(cfg, json.load(f))


def cache_geometry(cfg):
    """Flatten the cache section into CacheHierarchy.initialize() arguments."""
    l1 = cfg["cache"]["l1"]
    l2 = cfg["cache"]["l2"]
    return l1["capacity"], l1["block_size"], l2["capacity"], l2["block_size"]
