import logging
import re
from functools import lru_cache
from typing import Any, Dict, FrozenSet, Iterable, Mapping, NamedTuple, Optional

from campus_rbac.core.models import ConfigurationError, UnknownPermissionError
from campus_rbac.core.permissions import PERMISSION_DEFINITIONS, WILDCARD

logger = logging.getLogger(__name__)

PERMISSION_NAME_PATTERN = re.compile(r"^[a-z][a-z_]*:[a-z][a-z_]*$")


class PermissionDefinition(NamedTuple):
    name: str
    resource: str
    action: str
    description: Optional[str]


class PermissionCatalog:
    """
    Immutable set of every permission name the system recognises.

    Built once from the static registry; membership checks are what the
    resolver, the route guard and the admin API validate against.
    """

    def __init__(self, definitions: Mapping[str, Optional[str]]):
        invalid = [name for name in definitions if not PERMISSION_NAME_PATTERN.match(name)]
        if invalid:
            raise ConfigurationError(f"Malformed permission name(s): {', '.join(sorted(invalid))}")

        self._definitions: Dict[str, PermissionDefinition] = {}
        for name in sorted(definitions):
            resource, action = name.split(":", 1)
            self._definitions[name] = PermissionDefinition(name, resource, action, definitions[name])
        self._names: FrozenSet[str] = frozenset(self._definitions)

    def __contains__(self, name: object) -> bool:
        return name in self._names

    def __iter__(self):
        return iter(self._definitions.values())

    def __len__(self) -> int:
        return len(self._names)

    @property
    def names(self) -> FrozenSet[str]:
        return self._names

    def get(self, name: str) -> Optional[PermissionDefinition]:
        return self._definitions.get(name)

    def require(self, name: str) -> PermissionDefinition:
        definition = self._definitions.get(name)
        if definition is None:
            raise UnknownPermissionError([name])
        return definition

    def unknown(self, names: Iterable[str]) -> FrozenSet[str]:
        return frozenset(name for name in names if name not in self._names)

    def actions_of(self, resource: str) -> FrozenSet[str]:
        return frozenset(d.name for d in self._definitions.values() if d.resource == resource)


def expand_legacy_permissions(payload: Any, catalog: PermissionCatalog) -> FrozenSet[str]:
    """
    Translate a legacy role's stored permission payload into catalog names.

    Two shapes exist in stored data:
      - a list of names, where ``"*"`` means the whole catalog;
      - a mapping ``resource -> [actions]``, where ``{"*": ["*"]}`` means the
        whole catalog and ``resource: ["*"]`` every action of that resource.

    Names the catalog does not know are dropped with a warning.
    """
    if not payload:
        return frozenset()

    if isinstance(payload, str):
        payload = [payload]

    requested = set()
    if isinstance(payload, Mapping):
        for resource, actions in payload.items():
            if isinstance(actions, str):
                actions = [actions]
            for action in actions or []:
                if resource == WILDCARD and action == WILDCARD:
                    return catalog.names
                if resource == WILDCARD:
                    requested.update(d.name for d in catalog if d.action == action)
                elif action == WILDCARD:
                    requested.update(catalog.actions_of(resource))
                else:
                    requested.add(f"{resource}:{action}")
    else:
        for name in payload:
            if name == WILDCARD:
                return catalog.names
            requested.add(name)

    unknown = catalog.unknown(requested)
    if unknown:
        logger.warning("Ignoring legacy permission(s) absent from the catalog: %s", sorted(unknown))
    return frozenset(requested - unknown)


def holds_wildcard(payload: Any) -> bool:
    """True when a legacy permission payload grants everything."""
    if not payload:
        return False
    if isinstance(payload, str):
        return payload == WILDCARD
    if isinstance(payload, Mapping):
        actions = payload.get(WILDCARD)
        if isinstance(actions, str):
            actions = [actions]
        return bool(actions) and WILDCARD in actions
    return WILDCARD in payload


@lru_cache()
def get_permission_catalog() -> PermissionCatalog:
    return PermissionCatalog(PERMISSION_DEFINITIONS)
