# errors.py

class SimulatorError(Exception):
    """Base class for every recoverable simulator error."""


class CacheConfigError(SimulatorError, ValueError):
    """Raised when a cache level is built with an unusable geometry."""


class CacheNotInitializedError(SimulatorError, RuntimeError):
    """Raised when the cache hierarchy is used before initialization."""


class UnknownStrategyError(SimulatorError, ValueError):
    """Raised for an allocation strategy name that is not recognised."""
