"""
Branch group registry: partitions branches into the "next" and "coffemania" groups.
Built once at startup from the branch listing and passed to the services that need it.
"""

import logging
import threading
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Optional

from src.models.sales import BranchGroup

logger = logging.getLogger(__name__)


def _group_for_type(branch_type: Any) -> BranchGroup:
    from config.settings import BRANCH_TYPE_NEXT, BRANCH_TYPE_COFFEMANIA
    if branch_type == BRANCH_TYPE_NEXT:
        return BranchGroup.NEXT
    if branch_type == BRANCH_TYPE_COFFEMANIA:
        return BranchGroup.COFFEMANIA
    return BranchGroup.NONE


def _partition(branches: Iterable[Mapping[str, Any]]) -> Mapping[str, BranchGroup]:
    membership: Dict[str, BranchGroup] = {}
    for branch in branches:
        name = branch.get("name")
        if not name:
            continue
        group = _group_for_type(branch.get("type"))
        if group is not BranchGroup.NONE:
            membership[str(name)] = group
    return MappingProxyType(membership)


class BranchGroupRegistry:
    """
    Branch name -> group lookup. The whole mapping is swapped in one assignment
    on refresh(), so readers always see either the old or the new snapshot.
    """

    def __init__(self, branches: Optional[Iterable[Mapping[str, Any]]] = None):
        self._lock = threading.Lock()
        self._membership: Mapping[str, BranchGroup] = _partition(branches or [])

    @classmethod
    def from_listing(cls, branches: Iterable[Mapping[str, Any]]) -> "BranchGroupRegistry":
        return cls(branches)

    def refresh(self, branches: Iterable[Mapping[str, Any]]) -> None:
        """Replace the registry with a fresh partition of the given listing."""
        snapshot = _partition(branches)
        with self._lock:
            self._membership = snapshot
        logger.info(
            "Branch groups refreshed: %d next, %d coffemania",
            len(self.members(BranchGroup.NEXT)),
            len(self.members(BranchGroup.COFFEMANIA)),
        )

    def membership(self, branch: str) -> BranchGroup:
        return self._membership.get(branch, BranchGroup.NONE)

    def members(self, group: BranchGroup) -> FrozenSet[str]:
        """All branch names in a group, in no particular order."""
        return frozenset(name for name, g in self._membership.items() if g is group)

    def roster(self, group: BranchGroup) -> list:
        """Group members in listing order (for display)."""
        return [name for name, g in self._membership.items() if g is group]

    def to_dict(self) -> Dict[str, list]:
        return {
            BranchGroup.NEXT.value: self.roster(BranchGroup.NEXT),
            BranchGroup.COFFEMANIA.value: self.roster(BranchGroup.COFFEMANIA),
        }


def build_registry(client=None) -> BranchGroupRegistry:
    """Registry from the live branch listing; the configured roster if the listing fails."""
    from config.settings import DEFAULT_BRANCHES
    from src.services.exceptions import OrdersUnavailableError
    if client is None:
        from src.models.data_loader import OrdersClient
        client = OrdersClient()
    try:
        return BranchGroupRegistry.from_listing(client.list_branches())
    except OrdersUnavailableError as e:
        logger.warning("Branch listing unavailable (%s); using default roster", e.message)
        return BranchGroupRegistry.from_listing(DEFAULT_BRANCHES)
