"""In-memory package store.

This is the only component allowed to mutate :class:`Package` instances.
Packages are never deleted; they live for the lifetime of the store.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import datetime

from pywms._ids import make_package_id
from pywms.exceptions import WmsNotFoundError
from pywms.models._base import utcnow
from pywms.models.commands import ReceivePackage
from pywms.models.package import Package, PackageStatus
from pywms.state.transitions import Transition, Trigger, resolve


class PackageStore:
    """Authoritative package state.

    Timestamps come from the injected *clock* and are clamped so that a
    package's recorded timestamps never go backwards, even if the wall
    clock does.
    """

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = make_package_id,
    ) -> None:
        self._clock = clock
        self._id_factory = id_factory
        self._packages: dict[str, Package] = {}

    def __len__(self) -> int:
        return len(self._packages)

    def __iter__(self) -> Iterator[Package]:
        return iter(list(self._packages.values()))

    def __contains__(self, package_id: object) -> bool:
        return package_id in self._packages

    def _new_id(self) -> str:
        package_id = self._id_factory()
        while package_id in self._packages:
            package_id = self._id_factory()
        return package_id

    def _stamp(self, package: Package, status: PackageStatus) -> datetime:
        now = self._clock()
        if package.timestamps:
            latest = max(package.timestamps.values())
            if now < latest:
                now = latest
        package.timestamps[status] = now
        return now

    def create(self, command: ReceivePackage) -> Package:
        """Allocate a new ``received`` package from a receive command."""
        package = Package(
            package_id=self._new_id(),
            order_id=command.order_id,
            client_order_ref=command.client_order_ref,
            items=list(command.items),
            pickup=command.pickup,
            delivery=command.delivery,
            contact=command.contact,
            meta=dict(command.callback_meta),
        )
        self._stamp(package, PackageStatus.RECEIVED)
        self._packages[package.package_id] = package
        return package

    def get(self, package_id: str) -> Package | None:
        return self._packages.get(package_id)

    def require(self, package_id: str) -> Package:
        """Return the package or raise :class:`WmsNotFoundError`."""
        package = self._packages.get(package_id)
        if package is None:
            raise WmsNotFoundError("package_not_found", package_id=package_id)
        return package

    def find(self, reference: str) -> Package | None:
        """Look up by package id, then by order id or client order reference."""
        package = self._packages.get(reference)
        if package is not None:
            return package
        for candidate in self._packages.values():
            if reference in (candidate.order_id, candidate.client_order_ref):
                return candidate
        return None

    def check(self, package: Package, trigger: Trigger) -> Transition:
        """Resolve *trigger* without mutating the package."""
        return resolve(package.status, trigger, history=package.timestamps.keys())

    def apply(
        self,
        package: Package,
        trigger: Trigger,
        *,
        vehicle_id: str | None = None,
    ) -> Transition:
        """Apply a lifecycle trigger.

        Raises
        ------
        WmsTransitionError
            If the transition table rejects the trigger; the package is
            left untouched.
        """
        transition = self.check(package, trigger)
        package.status = transition.status
        if transition.stamp is not None:
            self._stamp(package, transition.stamp)
        if trigger == Trigger.LOAD and vehicle_id is not None:
            package.assigned_vehicle = vehicle_id
        return transition

    def force(self, package: Package, status: PackageStatus) -> int:
        """Set *status* unconditionally and invalidate pending timers.

        Returns the new generation.
        """
        package.status = status
        self._stamp(package, status)
        package.generation += 1
        return package.generation
