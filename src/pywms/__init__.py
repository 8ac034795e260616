"""pywms - Async mock warehouse management engine (JSON lines over TCP)."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pywms")
except PackageNotFoundError:
    __version__ = "0+local"
from pywms.config import WmsConfig
from pywms.engine import WmsEngine
from pywms.exceptions import (
    WmsConfigError,
    WmsDecodeError,
    WmsError,
    WmsInjectedFailure,
    WmsNotFoundError,
    WmsTransitionError,
    WmsUnknownTypeError,
    WmsValidationError,
)
from pywms.faults import FailureInjector
from pywms.models import (
    CommandType,
    ErrorEvent,
    Package,
    PackageStatus,
    WmsEvent,
)
from pywms.registry import AdapterRegistry
from pywms.scheduler import TimedScheduler
from pywms.server import WmsServer
from pywms.state import PackageStore, Trigger

__all__ = [
    "__version__",
    "AdapterRegistry",
    "CommandType",
    "ErrorEvent",
    "FailureInjector",
    "Package",
    "PackageStatus",
    "PackageStore",
    "TimedScheduler",
    "Trigger",
    "WmsConfig",
    "WmsConfigError",
    "WmsDecodeError",
    "WmsEngine",
    "WmsError",
    "WmsEvent",
    "WmsInjectedFailure",
    "WmsNotFoundError",
    "WmsServer",
    "WmsTransitionError",
    "WmsUnknownTypeError",
    "WmsValidationError",
]
