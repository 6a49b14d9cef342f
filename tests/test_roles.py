"""
Role Capability Tests
"""

import sys
import os
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from rescuenet.models import RouteStatus, ValidationError
from rescuenet.roles import UserRole, can_request, capabilities_for, parse_role


def test_parse_role():
    assert parse_role("police") is UserRole.POLICE
    assert parse_role(" Hospital_Admin ") is UserRole.HOSPITAL_ADMIN
    assert parse_role(UserRole.AMBULANCE_DRIVER) is UserRole.AMBULANCE_DRIVER


def test_unknown_role_rejected():
    with pytest.raises(ValidationError):
        parse_role("janitor")


def test_police_clear_and_time_out():
    assert can_request("police", RouteStatus.CLEARED)
    assert can_request("police", RouteStatus.TIMEOUT)
    assert not can_request("police", RouteStatus.COMPLETED)


def test_driver_only_completes():
    assert can_request(UserRole.AMBULANCE_DRIVER, RouteStatus.COMPLETED)
    assert not can_request(UserRole.AMBULANCE_DRIVER, RouteStatus.CLEARED)


def test_hospital_roles():
    admin = capabilities_for(UserRole.HOSPITAL_ADMIN)
    staff = capabilities_for(UserRole.HOSPITAL_STAFF)

    assert admin.dashboard == staff.dashboard == "Hospital Dashboard"
    assert admin.can_view_fleet_map and admin.can_assign
    assert staff.route_transitions == frozenset()


def test_no_role_can_reactivate_a_route():
    for role in UserRole:
        assert not can_request(role, RouteStatus.ACTIVE)
