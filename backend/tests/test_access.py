"""
Role-based field filtering for job and service-request updates.

Pure checks on the access helpers; no database involved.
"""

import uuid

import pytest

from app.core.access import (
    SERVICE_REQUEST_UPDATE_FIELDS,
    allowed_service_request_fields,
    check_job_update,
    check_update_fields,
)
from app.core.errors import ApiError
from app.models.enums import UserRole
from app.models.jobs import Job
from app.models.property import Property
from app.models.user import User


def make_user(role: UserRole) -> User:
    return User(id=uuid.uuid4(), firebase_uid=uuid.uuid4().hex, email="x@example.com", role=role)


@pytest.fixture
def manager():
    return make_user(UserRole.PROPERTY_MANAGER)


@pytest.fixture
def technician():
    return make_user(UserRole.TECHNICIAN)


@pytest.fixture
def prop(manager):
    return Property(id=uuid.uuid4(), manager_id=manager.id, name="P", address="1 St", city="Town")


@pytest.fixture
def job(prop, technician):
    return Job(id=uuid.uuid4(), property_id=prop.id, title="Fix tap", assigned_to_id=technician.id)


# ============================================================================
# check_update_fields
# ============================================================================

def test_allowed_fields_pass():
    check_update_fields(["status", "notes"], ("status", "notes", "actual_cost"))


def test_disallowed_field_names_allowed_set():
    with pytest.raises(ApiError) as exc:
        check_update_fields(["title"], ("status", "notes"))
    assert exc.value.status_code == 403
    assert "status, notes" in exc.value.detail


# ============================================================================
# Jobs
# ============================================================================

def test_technician_may_update_own_job_status(job, prop, technician):
    check_job_update(job, prop, technician, ["status", "notes", "actual_cost", "evidence"])


def test_technician_cannot_change_title(job, prop, technician):
    with pytest.raises(ApiError) as exc:
        check_job_update(job, prop, technician, ["status", "title"])
    assert exc.value.status_code == 403
    assert exc.value.detail.startswith("Technicians can only update")


def test_technician_cannot_touch_unassigned_job(job, prop):
    other = make_user(UserRole.TECHNICIAN)
    with pytest.raises(ApiError) as exc:
        check_job_update(job, prop, other, ["status"])
    assert exc.value.detail == "You can only update jobs assigned to you"


def test_manager_may_change_any_field(job, prop, manager):
    check_job_update(job, prop, manager, ["title", "priority", "assigned_to_id", "status"])


def test_other_manager_is_rejected(job, prop):
    with pytest.raises(ApiError):
        check_job_update(job, prop, make_user(UserRole.PROPERTY_MANAGER), ["title"])


@pytest.mark.parametrize("role", [UserRole.OWNER, UserRole.TENANT, UserRole.ADMIN])
def test_other_roles_cannot_update_jobs(job, prop, role):
    with pytest.raises(ApiError) as exc:
        check_job_update(job, prop, make_user(role), ["notes"])
    assert exc.value.status_code == 403


# ============================================================================
# Service requests
# ============================================================================

def test_service_request_allow_lists():
    assert allowed_service_request_fields(make_user(UserRole.PROPERTY_MANAGER)) == (
        "status", "priority", "title", "description", "review_notes",
    )
    assert allowed_service_request_fields(make_user(UserRole.OWNER)) == (
        "status", "priority", "review_notes",
    )
    assert allowed_service_request_fields(make_user(UserRole.TENANT)) == ("title", "description")


def test_technician_has_no_service_request_fields():
    with pytest.raises(ApiError) as exc:
        allowed_service_request_fields(make_user(UserRole.TECHNICIAN))
    assert exc.value.status_code == 403


def test_tenant_cannot_change_status():
    allowed = SERVICE_REQUEST_UPDATE_FIELDS[UserRole.TENANT]
    with pytest.raises(ApiError):
        check_update_fields(["status"], allowed)
