"""
Тесты для таблицы ролей и сопоставления ролей из таблицы.
"""

import pytest

from casebot.models.role import (
    ROLES,
    Capability,
    RoleName,
    format_permissions,
    get_role,
    map_role_from_sheet,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Администратор", RoleName.ADMIN),
        ("admin", RoleName.ADMIN),
        ("Юрист", RoleName.LAWYER),
        ("Менеджер проектов", RoleName.LAWYER),
        ("Помощник юриста", RoleName.LAWYER),
        ("Секретарь", RoleName.SECRETARY),
        ("Ассистент", RoleName.SECRETARY),
        ("Пользователь", RoleName.USER),
        ("Наблюдатель", RoleName.GUEST),
        ("", RoleName.GUEST),
        (None, RoleName.GUEST),
    ],
)
def test_map_role_from_sheet(text, expected):
    assert map_role_from_sheet(text) == expected


def test_role_table():
    assert ROLES[RoleName.ADMIN].permissions == frozenset(Capability)
    assert not ROLES[RoleName.LAWYER].allows(Capability.DELETE_CASE)
    assert not ROLES[RoleName.LAWYER].allows(Capability.MANAGE_USERS)
    assert ROLES[RoleName.SECRETARY].allows(Capability.RESCHEDULE_HEARING)
    assert not ROLES[RoleName.SECRETARY].allows(Capability.EDIT_CASE)
    assert ROLES[RoleName.USER].permissions == {Capability.VIEW_CASES, Capability.SEARCH_CASES}
    assert ROLES[RoleName.GUEST].permissions == frozenset()


def test_unknown_capability_is_denied_for_every_role():
    for role in ROLES.values():
        assert role.allows("launchRockets") is False


def test_get_role_falls_back_to_guest():
    assert get_role("superuser").name == RoleName.GUEST
    assert get_role(None).name == RoleName.GUEST
    assert get_role("lawyer").name == RoleName.LAWYER


def test_permission_map_and_labels():
    lawyer = get_role(RoleName.LAWYER)

    assert lawyer.permission_map()["editCase"] is True
    assert lawyer.permission_map()["deleteCase"] is False
    assert "Редактирование дел" in format_permissions(lawyer)
    assert format_permissions(get_role(RoleName.GUEST)) == "—"
