"""State layer.

The single source of truth for package lifecycle state: the transition
table decides, the store applies.
"""

from pywms.state.store import PackageStore
from pywms.state.transitions import TRANSITIONS, Transition, Trigger, resolve

__all__ = ["PackageStore", "TRANSITIONS", "Transition", "Trigger", "resolve"]
