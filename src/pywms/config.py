"""Engine configuration for pywms."""

from __future__ import annotations

import dataclasses
import os
from typing import Any

from pywms._constants import (
    DEFAULT_LOAD_DELAY,
    DEFAULT_MAX_FRAME_BYTES,
    DEFAULT_READY_DELAY,
    DEFAULT_RECEIVE_DELAY,
    ms_to_seconds,
)
from pywms.exceptions import WmsConfigError


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


@dataclasses.dataclass(frozen=True)
class WmsConfig:
    """Engine and server configuration.

    Parameters
    ----------
    host : str
        Interface the TCP (and admin HTTP) servers bind to.
    tcp_port : int
        Port for the JSON-lines adapter protocol. ``0`` picks a free port.
    http_port : int
        Port for the admin HTTP surface.
    admin_enabled : bool
        Start the admin HTTP surface alongside the TCP server.
    receive_delay : float
        Seconds between accepting ``receive_package`` and emitting
        ``package_received``.
    ready_delay : float
        Additional seconds between ``package_received`` and ``package_ready``.
    load_delay : float
        Seconds between accepting ``load_package`` and its outcome.
    error_rate : float
        Probability in ``[0, 1]`` that any failure-injection check fails.
        ``0`` disables random failures.
    fail_mode : bool
        Initial state of forced failure mode.
    max_frame_bytes : int
        Largest unterminated line buffered per connection before it is
        discarded with a ``frame_too_large`` decode error.
    """

    host: str = "127.0.0.1"
    tcp_port: int = 3008
    http_port: int = 3009
    admin_enabled: bool = True
    receive_delay: float = DEFAULT_RECEIVE_DELAY
    ready_delay: float = DEFAULT_READY_DELAY
    load_delay: float = DEFAULT_LOAD_DELAY
    error_rate: float = 0.0
    fail_mode: bool = False
    max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES

    def __post_init__(self) -> None:
        if not 0.0 <= self.error_rate <= 1.0:
            raise WmsConfigError(f"error_rate must be between 0 and 1, got {self.error_rate}")
        for name in ("receive_delay", "ready_delay", "load_delay"):
            value = getattr(self, name)
            if value < 0:
                raise WmsConfigError(f"{name} must be >= 0, got {value}")
        for name in ("tcp_port", "http_port"):
            value = getattr(self, name)
            if not 0 <= value <= 65535:
                raise WmsConfigError(f"{name} must be between 0 and 65535, got {value}")
        if self.max_frame_bytes <= 0:
            raise WmsConfigError(f"max_frame_bytes must be positive, got {self.max_frame_bytes}")

    @classmethod
    def from_env(cls, **overrides: Any) -> WmsConfig:
        """Create configuration from environment variables.

        Reads the ``WMS_*`` variables.
        Delay variables are expressed in milliseconds. Explicit keyword
        arguments override environment values.

        Parameters
        ----------
        **overrides
            Explicit field values that take precedence over env vars.

        Returns
        -------
        WmsConfig
            Populated configuration.

        Raises
        ------
        WmsConfigError
            If an environment value cannot be parsed.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        host = env.get("WMS_HOST")
        if host is not None:
            config_kwargs["host"] = host

        _ENV_INT_MAP = {
            "WMS_TCP_PORT": "tcp_port",
            "WMS_HTTP_PORT": "http_port",
            "WMS_MAX_FRAME_BYTES": "max_frame_bytes",
        }
        _ENV_MS_MAP = {
            "WMS_DEFAULT_DELAY_MS": "receive_delay",
            "WMS_READY_EXTRA_MS": "ready_delay",
            "WMS_LOAD_DELAY_MS": "load_delay",
        }
        try:
            for env_key, field_name in _ENV_INT_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = int(val)

            for env_key, field_name in _ENV_MS_MAP.items():
                val = env.get(env_key)
                if val is not None and field_name not in overrides:
                    config_kwargs[field_name] = ms_to_seconds(val)

            rate_env = env.get("WMS_ERROR_RATE")
            if rate_env is not None and "error_rate" not in overrides:
                config_kwargs["error_rate"] = float(rate_env)
        except ValueError as exc:
            raise WmsConfigError(f"Invalid numeric environment value: {exc}") from exc

        if "fail_mode" not in overrides:
            config_kwargs["fail_mode"] = _env_bool(env.get("WMS_FAIL_MODE"), False)
        if "admin_enabled" not in overrides:
            config_kwargs["admin_enabled"] = _env_bool(env.get("WMS_ADMIN_ENABLED"), True)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)
