"""
Role Capabilities
Which dashboard each user role lands on and what it may do there.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Union

from .models import RouteStatus, ValidationError


class UserRole(Enum):
    HOSPITAL_ADMIN = "hospital_admin"
    HOSPITAL_STAFF = "hospital_staff"
    AMBULANCE_DRIVER = "ambulance_driver"
    POLICE = "police"

    @property
    def display_name(self) -> str:
        return self.value.replace("_", " ").title()


@dataclass(frozen=True)
class RoleCapabilities:
    """
    Attributes:
        dashboard: Name of the landing view
        can_view_fleet_map: May see every ambulance of the hospital
        can_assign: May dispatch an ambulance to an emergency
        route_transitions: Route statuses this role may request
    """
    dashboard: str
    can_view_fleet_map: bool
    can_assign: bool
    route_transitions: FrozenSet[RouteStatus]


ROLE_CAPABILITIES: Dict[UserRole, RoleCapabilities] = {
    UserRole.HOSPITAL_ADMIN: RoleCapabilities(
        dashboard="Hospital Dashboard",
        can_view_fleet_map=True,
        can_assign=True,
        route_transitions=frozenset({RouteStatus.TIMEOUT, RouteStatus.COMPLETED}),
    ),
    UserRole.HOSPITAL_STAFF: RoleCapabilities(
        dashboard="Hospital Dashboard",
        can_view_fleet_map=True,
        can_assign=True,
        route_transitions=frozenset(),
    ),
    UserRole.AMBULANCE_DRIVER: RoleCapabilities(
        dashboard="Driver Navigation",
        can_view_fleet_map=False,
        can_assign=False,
        route_transitions=frozenset({RouteStatus.COMPLETED}),
    ),
    UserRole.POLICE: RoleCapabilities(
        dashboard="Police Route Clearance",
        can_view_fleet_map=False,
        can_assign=False,
        route_transitions=frozenset({RouteStatus.CLEARED, RouteStatus.TIMEOUT}),
    ),
}


def parse_role(value: Union[str, UserRole]) -> UserRole:
    if isinstance(value, UserRole):
        return value
    try:
        return UserRole(str(value).strip().lower())
    except ValueError:
        raise ValidationError(f"Unknown user role: {value!r}") from None


def capabilities_for(role: Union[str, UserRole]) -> RoleCapabilities:
    return ROLE_CAPABILITIES[parse_role(role)]


def can_request(role: Union[str, UserRole], status: RouteStatus) -> bool:
    """Whether the role is allowed to ask for a route to move to `status`."""
    return status in capabilities_for(role).route_transitions
