"""Project board synchronization: source handlers, publish scheduling, caching."""

from .cache import ExpiringCache
from .errors import BoardRelayError, ConfigurationError, SourceLoadError
from .events import EventChannel, Subscription

__version__ = "0.1.0"

__all__ = [
    "BoardRelayError",
    "ConfigurationError",
    "EventChannel",
    "ExpiringCache",
    "SourceLoadError",
    "Subscription",
]
