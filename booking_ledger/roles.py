from collections.abc import Iterable
from enum import StrEnum

from loguru import logger


class Role(StrEnum):
    ADMIN = "ADMIN"
    RESOURCE_MANAGER = "RESOURCE_MANAGER"
    CUSTOMER = "CUSTOMER"


class Capability(StrEnum):
    # Admin
    ORDERS_ALL = "orders:all"  # read/update every order, unscoped

    # Resource manager
    ORDERS_MANAGED = "orders:managed"  # orders of resources they manage

    # Customer
    BOOK = "resources:book"  # reserve slots on a resource


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.ADMIN: frozenset({Capability.ORDERS_ALL, Capability.BOOK}),
    Role.RESOURCE_MANAGER: frozenset({Capability.ORDERS_MANAGED}),
    Role.CUSTOMER: frozenset({Capability.BOOK}),
}


def parse_roles(names: Iterable[str] | None) -> frozenset[Role]:
    """Map stored role names onto Role, case-insensitively. Unknown names are dropped."""
    roles: set[Role] = set()
    for name in names or ():
        try:
            roles.add(Role(str(name).strip().upper()))
        except ValueError:
            logger.warning("Ignoring unknown role name {!r}", name)
    return frozenset(roles)


def capabilities_for(roles: Iterable[Role]) -> frozenset[Capability]:
    caps: set[Capability] = set()
    for role in roles:
        caps |= ROLE_CAPABILITIES[role]
    return frozenset(caps)
