import pytest

from errors import Forbidden, NotFound, ValidationError


def test_bootstrap_creates_first_admin_once(principal_service):
    admin = principal_service.bootstrap_admin({"name": "Root", "email": "Root@Example.com", "department": "IT"})
    assert admin.role == "admin"
    assert admin.email == "root@example.com"
    with pytest.raises(ValidationError):
        principal_service.bootstrap_admin({"name": "Second", "email": "two@example.com", "department": "IT"})


def test_admin_creates_interviewers_with_unique_email(principal_service, admin):
    created = principal_service.create_interviewer(
        admin, {"name": "Ivy", "email": "ivy@example.com", "department": "Platform"}
    )
    assert created.role == "interviewer"
    assert created.is_active
    with pytest.raises(ValidationError):
        principal_service.create_interviewer(admin, {"name": "Ivy 2", "email": "IVY@example.com", "department": "Data"})
    assert [p.id for p in principal_service.list_interviewers(admin)] == [created.id]


def test_interviewer_cannot_administer(principal_service, interviewer_a, interviewer_b):
    with pytest.raises(Forbidden):
        principal_service.list_interviewers(interviewer_a)
    with pytest.raises(Forbidden):
        principal_service.create_interviewer(interviewer_a, {"name": "X", "email": "x@example.com", "department": "Y"})
    with pytest.raises(Forbidden):
        principal_service.set_active(interviewer_a, interviewer_b.id, False)


def test_deactivation_is_soft_and_blocks_resolution(principal_service, principal_store, admin, interviewer_a):
    assert principal_service.resolve(interviewer_a.id).id == interviewer_a.id
    updated = principal_service.set_active(admin, interviewer_a.id, False)
    assert updated.is_active is False
    assert principal_store.get(interviewer_a.id) is not None
    assert principal_service.resolve(interviewer_a.id) is None
    assert principal_service.set_active(admin, interviewer_a.id, True).is_active is True


def test_set_active_validation(principal_service, admin):
    with pytest.raises(NotFound):
        principal_service.set_active(admin, "ghost", True)
    with pytest.raises(ValidationError):
        principal_service.set_active(admin, admin.id, None)


def test_resolve_unknown_principal(principal_service):
    assert principal_service.resolve(None) is None
    assert principal_service.resolve("nobody") is None
