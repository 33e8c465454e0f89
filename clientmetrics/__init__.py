from .aggregator import Aggregator
from .aggregator import DataRequestMetadata
from .handlers import ComponentHandler
from .handlers import HandlerRegistry
from .sender import BatchSender
from .sender import EventSender
from .sender import LogSender
from .settings import config
from .version import get_version


__version__ = get_version()

__all__ = [
    "__version__",
    "Aggregator",
    "BatchSender",
    "ComponentHandler",
    "DataRequestMetadata",
    "EventSender",
    "HandlerRegistry",
    "LogSender",
    "config",
]
