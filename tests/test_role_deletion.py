import pytest

from splarve.core.results import ErrorKind


@pytest.fixture
def intern(company, store):
    role = store.insert_role(company.id, "Intern", "#a3a3a3", 1)
    for user_id in ("intern-1", "intern-2", "intern-3"):
        store.add_user(user_id, f"{user_id}@acme.test")
        store.insert_membership(company.id, user_id, role.id)
    return role


def test_delete_role_moves_members(company, store, authority, intern):
    member_role = company.role("Member")
    assert member_role.position == intern.position == 1

    result = authority.delete_role(company.id, intern.id, member_role.id, acting_user_id="admin-1")

    assert result.success
    assert result.data.transferred_members == 3
    assert store.get_role(company.id, intern.id) is None
    for user_id in ("intern-1", "intern-2", "intern-3"):
        assert store.get_membership(company.id, user_id).role_id == member_role.id


def test_transfer_target_must_differ(company, authority, intern):
    result = authority.delete_role(company.id, intern.id, intern.id)
    assert result.error == ErrorKind.INVALID_TRANSFER_TARGET


def test_unknown_roles(company, store, authority, intern):
    foreign = store.insert_role("company-other", "Member", None, 1, is_default=True)

    assert authority.delete_role(company.id, intern.id, "role-missing").error == ErrorKind.ROLE_NOT_FOUND
    assert authority.delete_role(company.id, intern.id, "").error == ErrorKind.ROLE_NOT_FOUND
    assert authority.delete_role(company.id, intern.id, foreign.id).error == ErrorKind.ROLE_NOT_FOUND
    assert store.get_role(company.id, intern.id) is not None


def test_missing_role_is_reported_before_the_transfer_target(company, authority):
    result = authority.delete_role(company.id, "role-missing", "role-missing")
    assert result.error == ErrorKind.ROLE_NOT_FOUND


def test_default_roles_cannot_be_deleted(company, store, authority):
    result = authority.delete_role(company.id, company.role("HR").id, company.role("Member").id)

    assert result.error == ErrorKind.FORBIDDEN
    assert store.get_membership(company.id, "hr-1").role_id == company.role("HR").id


def test_deleting_requires_manage_roles(company, store, authority, intern):
    result = authority.delete_role(company.id, intern.id, company.role("Member").id, acting_user_id="hr-1")

    assert result.error == ErrorKind.FORBIDDEN
    assert store.get_role(company.id, intern.id) is not None


def test_refused_deletion_is_a_failed_result(company, store, authority, intern, monkeypatch):
    monkeypatch.setattr(
        store, "delete_role_with_transfer",
        lambda role_id, transfer_to_role_id: {"success": False, "message": "Cannot delete a role in use"}
    )

    result = authority.delete_role(company.id, intern.id, company.role("Member").id, acting_user_id="admin-1")

    assert result.success is False
    assert result.error == ErrorKind.VALIDATION_ERROR
    assert result.message == "Cannot delete a role in use"
    assert store.get_membership(company.id, "intern-1").role_id == intern.id
