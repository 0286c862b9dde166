import pytest

from fakes import FakeCompanyStore, FakeEmailService, FixedClock
from splarve.core.authority import RoleAuthority
from splarve.modules.auth.schemas import AccountType
from splarve.modules.companies.schemas import CompanyCreate
from splarve.modules.companies.service import CompanyService


class SeededCompany:
    def __init__(self, company, roles):
        self.company = company
        self.id = company.id
        self.roles = roles

    def role(self, name):
        return self.roles[name]


@pytest.fixture
def store():
    return FakeCompanyStore()


@pytest.fixture
def email():
    return FakeEmailService()


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def authority(store, email, clock):
    return RoleAuthority(store, email_service=email, clock=clock)


@pytest.fixture
def company(store, authority):
    """Acme with one member per default role: owner-1, admin-1, hr-1, social-1, member-1"""
    store.add_user("owner-1", "owner@acme.test", AccountType.COMPANY, "Olive Owner")
    result = CompanyService(store, authority).create_company(
        CompanyCreate(name="Acme", handle="acme"), "owner-1"
    )
    assert result.success
    roles = {role.name: role for role in store.list_roles(result.data.id)}
    for name in ("Admin", "HR", "Social", "Member"):
        user_id = f"{name.lower()}-1"
        store.add_user(user_id, f"{name.lower()}@acme.test", AccountType.COMPANY)
        store.insert_membership(result.data.id, user_id, roles[name].id)
    return SeededCompany(result.data, roles)
