"""Package lifecycle engine.

:class:`WmsEngine` is the explicit context object that owns every piece
of mutable state: the package store, the adapter registry, the failure
injector and the timer scheduler. Several engines can coexist in one
process (tests do this constantly).

The engine is transport-agnostic. The TCP server feeds it decoded lines
together with the :class:`~pywms.connection.EventSink` they arrived on;
the admin surface calls the plain in-process methods at the bottom of the
class.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Callable
from datetime import datetime
from functools import partial
from typing import Any

from pywms._constants import DEFAULT_SCAN_POINT, DEFAULT_SIMULATED_ERROR
from pywms._framing import decode_frame
from pywms._ids import make_message_id, make_package_id, make_vehicle_id
from pywms._redact import redact_for_log, redact_line
from pywms.config import WmsConfig
from pywms.connection import EventSink
from pywms.exceptions import (
    WmsDecodeError,
    WmsError,
    WmsInjectedFailure,
    WmsNotFoundError,
    WmsTransitionError,
    WmsUnknownTypeError,
    WmsValidationError,
)
from pywms.faults import FailureInjector
from pywms.models._base import utcnow
from pywms.models.commands import (
    COMMAND_MODELS,
    CommandType,
    LoadPackage,
    ReceivePackage,
    RegisterAdapter,
    ScanPackage,
    SimulateError,
)
from pywms.models.events import (
    Ack,
    ErrorEvent,
    PackageLoaded,
    PackageReady,
    PackageReceived,
    PackageScanned,
    RegisterAck,
    WmsEvent,
    status_event,
)
from pywms.models.package import Package, PackageStatus
from pywms.registry import AdapterRegistry
from pywms.scheduler import TimedScheduler
from pywms.state.store import PackageStore
from pywms.state.transitions import Trigger

_logger = logging.getLogger(__name__)


class WmsEngine:
    """Command dispatcher and lifecycle driver.

    Usage::

        engine = WmsEngine(WmsConfig(receive_delay=0.1))
        engine.handle_line(connection, '{"type": "receive_package", "orderId": "o1"}')
        ...
        await engine.aclose()
    """

    def __init__(
        self,
        config: WmsConfig | None = None,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
        package_ids: Callable[[], str] = make_package_id,
    ) -> None:
        self.config = config or WmsConfig()
        self.store = PackageStore(clock=clock, id_factory=package_ids)
        self.registry = AdapterRegistry()
        self.faults = FailureInjector(rate=self.config.error_rate, forced=self.config.fail_mode, rng=rng)
        self.scheduler = TimedScheduler(self.store.get)
        self._handlers: dict[CommandType, Callable[[EventSink, Any], None]] = {
            CommandType.REGISTER_ADAPTER: self._handle_register,
            CommandType.RECEIVE_PACKAGE: self._handle_receive,
            CommandType.SCAN_PACKAGE: self._handle_scan,
            CommandType.LOAD_PACKAGE: self._handle_load,
            CommandType.SIMULATE_ERROR: self._handle_simulate_error,
        }

    # ------------------------------------------------------------------
    # Connection boundary
    # ------------------------------------------------------------------

    def handle_line(self, connection: EventSink, line: str) -> None:
        """Decode one frame and dispatch it. Never raises for bad input."""
        try:
            message = decode_frame(line)
        except WmsDecodeError as exc:
            _logger.warning("Undecodable line from %s (%s): %s", connection.peer, exc.message, redact_line(line))
            connection.send(ErrorEvent.from_exception(exc))
            return
        self.handle_message(connection, message)

    def handle_message(self, connection: EventSink, message: dict[str, Any]) -> None:
        """Dispatch a decoded message; every failure becomes an ``error`` event."""
        try:
            command_type = self._command_type(message)
            if command_type != CommandType.REGISTER_ADAPTER and connection.adapter_id is None:
                _logger.warning(
                    "Message from unregistered connection %s, processing anyway: %s",
                    connection.peer,
                    redact_for_log(message),
                )
            command = COMMAND_MODELS[command_type].parse(message)
            self._handlers[command_type](connection, command)
        except WmsError as exc:
            if isinstance(exc, WmsUnknownTypeError):
                _logger.warning("Unknown message type from %s: %s", connection.peer, exc.received)
            elif isinstance(exc, WmsValidationError):
                _logger.warning("Rejected command from %s: %s", connection.peer, exc.message)
            connection.send(ErrorEvent.from_exception(exc))

    def connection_lost(self, connection: EventSink) -> None:
        """Forget the adapter identity held by a closed connection.

        Packages are not owned by connections and are left untouched.
        """
        self.registry.unregister(connection)

    @staticmethod
    def _command_type(message: dict[str, Any]) -> CommandType:
        msg_type = message.get("type")
        if not isinstance(msg_type, str) or not msg_type:
            raise WmsDecodeError("missing_type")
        try:
            return CommandType(msg_type)
        except ValueError:
            raise WmsUnknownTypeError(msg_type) from None

    def _deliver(self, origin: EventSink, event: WmsEvent) -> bool:
        """Send a delayed event back to the connection that caused it.

        Falls back to the adapter identity the origin held when it has
        since closed (the adapter may have reconnected).
        """
        if origin.is_open:
            return origin.send(event)
        if origin.adapter_id is not None:
            return self.registry.send(origin.adapter_id, event)
        _logger.debug("Dropping %s: origin %s is gone", event.type, origin.peer)
        return False

    # ------------------------------------------------------------------
    # Command handlers
    # ------------------------------------------------------------------

    def _handle_register(self, connection: EventSink, command: RegisterAdapter) -> None:
        record = self.registry.register(connection, command.adapter_id, command.capabilities)
        connection.send(RegisterAck(adapter_id=record.adapter_id))

    def _handle_receive(self, connection: EventSink, command: ReceivePackage) -> None:
        if self.faults.should_fail("receive_package"):
            raise WmsInjectedFailure("simulated_receive_failure", order_id=command.order_id)

        package = self.store.create(command)
        _logger.info("Package %s received for order %s", package.package_id, package.order_id)
        connection.send(
            Ack(
                message_id=make_message_id(),
                status=PackageStatus.RECEIVED,
                package_id=package.package_id,
                order_id=package.order_id,
            )
        )
        self.scheduler.schedule(
            package,
            self.config.receive_delay,
            partial(self._confirm_received, connection),
            label="confirm_received",
        )

    def _handle_scan(self, connection: EventSink, command: ScanPackage) -> None:
        package = self.store.require(command.package_id)
        self.store.apply(package, Trigger.SCAN)
        connection.send(
            PackageScanned(
                package_id=package.package_id,
                order_id=package.order_id,
                scan_point=command.scan_point or DEFAULT_SCAN_POINT,
                timestamp=package.timestamps[PackageStatus.SCANNED],
            )
        )

    def _handle_load(self, connection: EventSink, command: LoadPackage) -> None:
        package = self.store.require(command.package_id)
        vehicle_id = command.vehicle_id or make_vehicle_id()
        self.scheduler.schedule(
            package,
            self.config.load_delay,
            partial(self._complete_load, connection, vehicle_id),
            label="load",
        )

    def _handle_simulate_error(self, connection: EventSink, command: SimulateError) -> None:
        if command.package_id is None:
            raise WmsNotFoundError("package_not_found")
        package = self.store.require(command.package_id)
        self.store.force(package, PackageStatus.ERROR)
        event = ErrorEvent(
            message=command.error or DEFAULT_SIMULATED_ERROR,
            code=WmsInjectedFailure.code,
            package_id=package.package_id,
            order_id=package.order_id,
        )
        connection.send(event)
        # Warehouse-wide visibility: every other adapter hears about it too.
        self.registry.broadcast(event, exclude=connection)

    # ------------------------------------------------------------------
    # Timer callbacks
    # ------------------------------------------------------------------

    def _inject_failure(self, origin: EventSink, package: Package, operation: str, message: str) -> bool:
        if not self.faults.should_fail(operation):
            return False
        self.store.apply(package, Trigger.FAIL)
        self._deliver(
            origin,
            ErrorEvent(
                message=message,
                code=WmsInjectedFailure.code,
                package_id=package.package_id,
                order_id=package.order_id,
            ),
        )
        return True

    def _superseded(self, package: Package, trigger: Trigger) -> bool:
        try:
            self.store.check(package, trigger)
        except WmsTransitionError:
            _logger.debug("Skipping %s for %s in status %s", trigger, package.package_id, package.status)
            return True
        return False

    def _confirm_received(self, origin: EventSink, package: Package) -> None:
        if self._superseded(package, Trigger.CONFIRM_RECEIVED):
            return
        if self._inject_failure(origin, package, "package_received", "simulated_processing_error"):
            return
        self.store.apply(package, Trigger.CONFIRM_RECEIVED)
        self._deliver(
            origin,
            PackageReceived(
                package_id=package.package_id,
                order_id=package.order_id,
                timestamp=package.timestamps[PackageStatus.RECEIVED],
            ),
        )
        self.scheduler.schedule(
            package,
            self.config.ready_delay,
            partial(self._mark_ready, origin),
            label="mark_ready",
        )

    def _mark_ready(self, origin: EventSink, package: Package) -> None:
        if self._superseded(package, Trigger.MARK_READY):
            return
        if self._inject_failure(origin, package, "package_ready", "simulated_processing_error"):
            return
        self.store.apply(package, Trigger.MARK_READY)
        self._deliver(
            origin,
            PackageReady(
                package_id=package.package_id,
                order_id=package.order_id,
                timestamp=package.timestamps[PackageStatus.READY_FOR_LOADING],
            ),
        )

    def _complete_load(self, origin: EventSink, vehicle_id: str, package: Package) -> None:
        try:
            self.store.check(package, Trigger.LOAD)
        except WmsTransitionError as exc:
            exc.package_id = package.package_id
            exc.order_id = package.order_id
            self._deliver(origin, ErrorEvent.from_exception(exc))
            return
        if self._inject_failure(origin, package, "load_package", "simulated_load_error"):
            return
        self.store.apply(package, Trigger.LOAD, vehicle_id=vehicle_id)
        _logger.info("Package %s loaded onto %s", package.package_id, vehicle_id)
        self._deliver(
            origin,
            PackageLoaded(
                package_id=package.package_id,
                order_id=package.order_id,
                vehicle_id=vehicle_id,
                timestamp=package.timestamps[PackageStatus.LOADED],
            ),
        )

    # ------------------------------------------------------------------
    # In-process admin API
    # ------------------------------------------------------------------

    def list_packages(self) -> list[dict[str, Any]]:
        return [package.snapshot() for package in self.store]

    def find_package(self, reference: str) -> dict[str, Any] | None:
        """Snapshot by package id, order id or client order reference."""
        package = self.store.find(reference)
        return package.snapshot() if package is not None else None

    def advance_package(self, package_id: str, to: str) -> Package:
        """Force a package into an arbitrary status and tell every adapter.

        Pending timers for the package become stale.

        Raises
        ------
        WmsNotFoundError
            Unknown package.
        WmsValidationError
            *to* is not a known status.
        """
        package = self.store.require(package_id)
        try:
            status = PackageStatus(to)
        except ValueError:
            raise WmsValidationError(
                "invalid_target_status",
                package_id=package_id,
                details={"allowed": [str(s) for s in PackageStatus]},
            ) from None
        self.store.force(package, status)
        _logger.info("Package %s forced to %s", package_id, status)
        self.registry.broadcast(status_event(package, status))
        return package

    def set_failure_mode(self, enabled: bool) -> None:
        self.faults.forced = enabled

    def set_error_rate(self, rate: float) -> None:
        self.faults.rate = rate

    def status(self) -> dict[str, Any]:
        return {
            "tcpPort": self.config.tcp_port,
            "httpPort": self.config.http_port,
            "adapters": self.registry.adapter_ids(),
            "packageCount": len(self.store),
            "pendingTimers": self.scheduler.pending,
            "errorMode": self.faults.forced,
            "errorRate": self.faults.rate,
            "defaultDelayMs": int(self.config.receive_delay * 1000),
            "readyExtraMs": int(self.config.ready_delay * 1000),
            "loadDelayMs": int(self.config.load_delay * 1000),
        }

    async def aclose(self) -> None:
        """Cancel pending timers. Package and adapter state is kept."""
        await self.scheduler.aclose()
