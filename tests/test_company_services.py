from datetime import datetime, timedelta, timezone

import pytest

from splarve.config.permissions_config import PERMISSION_CATALOG
from splarve.core.results import ErrorKind
from splarve.database.company_store import StoreError
from splarve.modules.companies.schemas import CompanyCreate
from splarve.modules.companies.service import CompanyService
from splarve.modules.invitations.service import InvitationService
from splarve.modules.roles.schemas import RoleCreate, RoleUpdate
from splarve.modules.roles.service import RoleService
from splarve.scripts.seed_permissions import backfill_default_role_grants, seed_permissions


@pytest.fixture
def companies(store, authority):
    return CompanyService(store, authority)


@pytest.fixture
def roles(store, authority):
    return RoleService(store, authority)


@pytest.fixture
def invitations(store, authority):
    return InvitationService(store, authority)


def test_new_company_gets_default_roles_and_an_owner(company, store):
    roles = store.list_roles(company.id)

    assert [(r.name, r.position, r.is_default) for r in roles] == [
        ("Owner", 5, True),
        ("Admin", 4, True),
        ("HR", 3, True),
        ("Social", 2, True),
        ("Member", 1, True),
    ]
    assert store.get_membership(company.id, "owner-1").role_id == company.role("Owner").id
    owner_grants = store.get_role_permissions(company.role("Owner").id)
    assert len(owner_grants) == len(PERMISSION_CATALOG)
    assert all(owner_grants.values())


def test_handles_are_unique(company, companies):
    result = companies.create_company(CompanyCreate(name="Acme Two", handle="acme"), "admin-1")
    assert result.error == ErrorKind.CONFLICT


def test_failed_company_creation_leaves_nothing_behind(store, companies, monkeypatch):
    store.add_user("founder-1", "founder@beta.test")

    def fail_insert(company_id, user_id, role_id):
        raise StoreError(f"adding {user_id} to company {company_id}")

    monkeypatch.setattr(store, "insert_membership", fail_insert)
    with pytest.raises(StoreError):
        companies.create_company(CompanyCreate(name="Beta", handle="beta"), "founder-1")

    assert store.companies == {}
    assert store.roles == {}
    assert store.grants == {}

    monkeypatch.undo()
    retry = companies.create_company(CompanyCreate(name="Beta", handle="beta"), "founder-1")

    assert retry.success
    owner = store.get_role_by_name(retry.data.id, "Owner")
    assert store.get_membership(retry.data.id, "founder-1").role_id == owner.id
    assert store.count_members_with_role(retry.data.id, owner.id) == 1


def test_lookup_by_handle(company, companies):
    assert companies.lookup_by_handle("ACME").data.id == company.id
    assert companies.lookup_by_handle("nobody").error == ErrorKind.NOT_FOUND


def test_members_list_reports_caller_abilities(company, companies):
    admin_view = companies.list_members(company.id, "admin-1").data
    hr_view = companies.list_members(company.id, "hr-1").data

    assert [m.role_name for m in admin_view.members] == ["Owner", "Admin", "HR", "Social", "Member"]
    assert admin_view.members[0].full_name == "Olive Owner"
    assert admin_view.user_permissions.can_change_roles is True
    assert admin_view.user_permissions.can_remove_members is True
    assert hr_view.user_permissions.can_change_roles is False
    assert hr_view.user_permissions.can_change_regular_roles is True
    assert companies.list_members(company.id, "stranger").error == ErrorKind.FORBIDDEN


def test_create_custom_role(company, store, roles):
    result = roles.create_role(
        company.id, RoleCreate(name="Recruiter", position=2, permissions={"invite_users": True}), "admin-1"
    )

    assert result.success
    assert result.data.permissions["invite_users"] is True
    assert result.data.permissions["manage_roles"] is False
    assert len(result.data.permissions) == len(PERMISSION_CATALOG)


def test_custom_role_rules(company, roles):
    too_high = roles.create_role(company.id, RoleCreate(name="Boss", position=4), "admin-1")
    unknown = roles.create_role(company.id, RoleCreate(name="X", permissions={"fly": True}), "admin-1")
    duplicate = roles.create_role(company.id, RoleCreate(name="HR", position=1), "admin-1")
    no_permission = roles.create_role(company.id, RoleCreate(name="Y"), "hr-1")

    assert too_high.error == ErrorKind.FORBIDDEN
    assert unknown.error == ErrorKind.VALIDATION_ERROR
    assert duplicate.error == ErrorKind.CONFLICT
    assert no_permission.error == ErrorKind.FORBIDDEN


def test_update_role(company, store, roles):
    created = roles.create_role(company.id, RoleCreate(name="Recruiter", position=2), "admin-1").data

    result = roles.update_role(
        company.id, created.id, RoleUpdate(name="Talent", permissions={"invite_users": True}), "admin-1"
    )

    assert result.success
    assert result.data.name == "Talent"
    assert store.is_permission_enabled(created.id, "invite_users") is True


def test_default_roles_keep_their_names(company, roles):
    rename = roles.update_role(company.id, company.role("HR").id, RoleUpdate(name="People"), "admin-1")
    above = roles.update_role(company.id, company.role("Owner").id, RoleUpdate(color="#000000"), "admin-1")
    recolor = roles.update_role(company.id, company.role("HR").id, RoleUpdate(color="#000000"), "admin-1")

    assert rename.error == ErrorKind.FORBIDDEN
    assert above.error == ErrorKind.FORBIDDEN
    assert recolor.success
    assert recolor.data.color == "#000000"


def test_system_permissions_grouped_by_category(company, store, roles):
    seed_permissions(store)

    result = roles.get_system_permissions(company.id, "admin-1")

    grouped = result.data.permissions
    assert set(grouped) == {"members", "roles", "job_posts"}
    assert [p.name for p in grouped["roles"]] == ["manage_roles"]
    assert roles.get_system_permissions(company.id, "member-1").error == ErrorKind.FORBIDDEN


def test_user_permissions(company, roles):
    assert roles.get_user_permissions(company.id, "hr-1").data.permissions["invite_users"] is True
    assert roles.get_user_permissions(company.id, "stranger").error == ErrorKind.FORBIDDEN


def test_backfill_adds_only_missing_grants(company, store):
    hr_role = company.role("HR")
    store.grants[hr_role.id].pop("manage_roles")
    store.set_role_permissions(hr_role.id, {"remove_members": True})

    added = backfill_default_role_grants(store)

    assert added == 1
    assert store.get_role_permissions(hr_role.id)["manage_roles"] is False
    assert store.get_role_permissions(hr_role.id)["remove_members"] is True


def test_company_invitations_and_cancel(company, store, authority, invitations):
    invitation = authority.create_invitation(company.id, "admin-1", "a@example.com", "social").data

    listed = invitations.list_company_invitations(company.id, "hr-1").data
    assert [(i.id, i.role_name, i.company_handle) for i in listed] == [(invitation.id, "Social", "acme")]
    assert invitations.list_company_invitations(company.id, "member-1").error == ErrorKind.FORBIDDEN

    assert invitations.cancel_invitation("company-other", invitation.id, "admin-1").error == ErrorKind.FORBIDDEN
    assert invitations.cancel_invitation(company.id, invitation.id, "admin-1").success
    assert invitations.cancel_invitation(company.id, invitation.id, "admin-1").error == ErrorKind.NOT_FOUND


def test_my_invitations_skip_expired(company, store, authority, invitations, clock):
    store.add_user("newhire", "new.hire@example.com")
    fresh = authority.create_invitation(company.id, "admin-1", "new.hire@example.com", "member").data
    other = store.insert_role("company-other", "Member", None, 1, is_default=True)
    store.insert_invitation({
        "company_id": "company-other",
        "email": "new.hire@example.com",
        "role_id": other.id,
        "status": "pending",
        "expires_at": clock.now - timedelta(days=1),
    })

    result = invitations.list_my_invitations("newhire", now=clock.now)

    assert [(i.id, i.company_name, i.role_name) for i in result.data] == [(fresh.id, "Acme", "Member")]
    assert invitations.list_my_invitations("ghost", now=datetime.now(timezone.utc)).error == ErrorKind.UNAUTHORIZED
