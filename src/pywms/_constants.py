"""Internal constants shared across the library."""

FRAME_TERMINATOR = b"\n"

PACKAGE_ID_PREFIX = "pkg-"
ADAPTER_ID_PREFIX = "adapter-"
MESSAGE_ID_PREFIX = "m-"
VEHICLE_ID_PREFIX = "v-"

DEFAULT_SCAN_POINT = "unknown"
DEFAULT_SIMULATED_ERROR = "simulated_error"

# ------------------------------------------------------------------
# Default timings (seconds)
# ------------------------------------------------------------------

DEFAULT_RECEIVE_DELAY = 3.0
DEFAULT_READY_DELAY = 1.0
DEFAULT_LOAD_DELAY = 2.0

DEFAULT_MAX_FRAME_BYTES = 64 * 1024
OUTBOX_MAXSIZE = 1024
READ_CHUNK_SIZE = 4096


def ms_to_seconds(value: str | int | float) -> float:
    """Convert a millisecond value (as found in env vars) to seconds.

    Raises :class:`ValueError` if *value* is not numeric.
    """
    return float(value) / 1000.0
