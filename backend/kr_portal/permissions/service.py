from typing import Iterable, Optional

from .constants import Feature
from .roles import Role, parse_role
from .role_map import ROLE_CAPABILITIES


class CapabilityResolver:
    """Resolve feature access for a role from a static capability table."""

    def __init__(self, table: Optional[dict[Role, frozenset[str]]] = None):
        self.table = ROLE_CAPABILITIES if table is None else table

    def can_access(self, role, feature) -> bool:
        """
        Exact membership test of `feature` in the role's capability set.
        Unknown or missing roles and unknown features are denied.
        """
        resolved = parse_role(role)
        if resolved is None:
            return False
        if isinstance(feature, Feature):
            feature = feature.value
        elif not isinstance(feature, str):
            return False
        return feature in self.table.get(resolved, frozenset())

    def capabilities_for(self, role) -> frozenset[str]:
        resolved = parse_role(role)
        if resolved is None:
            return frozenset()
        return self.table.get(resolved, frozenset())

    def capability_map(self, role, features: Optional[Iterable] = None) -> dict[str, bool]:
        """Bulk check; defaults to every declared Feature."""
        if features is None:
            features = [f.value for f in Feature]
        result = {}
        for feature in features:
            key = feature.value if isinstance(feature, Feature) else str(feature)
            result[key] = self.can_access(role, feature)
        return result


capability_resolver = CapabilityResolver()


def can_access(role, feature) -> bool:
    return capability_resolver.can_access(role, feature)
