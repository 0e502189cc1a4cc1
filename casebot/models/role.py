"""
Роли пользователей и их права.

Таблица ролей статична и не читается из Google-таблицы: из таблицы берется
только название роли пользователя.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict


class RoleName(str, Enum):
    ADMIN = "admin"
    LAWYER = "lawyer"
    SECRETARY = "secretary"
    USER = "user"
    GUEST = "guest"


class Capability(str, Enum):
    VIEW_CASES = "viewCases"
    VIEW_ALL_CASES = "viewAllCases"
    SEARCH_CASES = "searchCases"
    ADD_DATE = "addDate"
    RESCHEDULE_HEARING = "rescheduleHearing"
    EDIT_CASE = "editCase"
    DELETE_CASE = "deleteCase"
    MANAGE_USERS = "manageUsers"
    VIEW_REPORTS = "viewReports"


CAPABILITY_LABELS: dict[Capability, str] = {
    Capability.VIEW_CASES: "Просмотр дел",
    Capability.VIEW_ALL_CASES: "Просмотр всех дел",
    Capability.SEARCH_CASES: "Поиск дел",
    Capability.ADD_DATE: "Добавление дат заседаний",
    Capability.RESCHEDULE_HEARING: "Перенос заседаний",
    Capability.EDIT_CASE: "Редактирование дел",
    Capability.DELETE_CASE: "Удаление дел",
    Capability.MANAGE_USERS: "Управление пользователями",
    Capability.VIEW_REPORTS: "Просмотр отчетов",
}


class RoleDefinition(BaseModel):
    """Роль: внутреннее имя, подпись для пользователя и набор прав."""

    model_config = ConfigDict(frozen=True)

    name: RoleName
    display_name: str
    permissions: frozenset[Capability]

    def allows(self, capability: Capability | str) -> bool:
        """Проверяет право. Неизвестное имя права всегда запрещено."""
        try:
            capability = Capability(capability)
        except ValueError:
            return False
        return capability in self.permissions

    def permission_map(self) -> dict[str, bool]:
        return {capability.value: capability in self.permissions for capability in Capability}


ROLES: dict[RoleName, RoleDefinition] = {
    RoleName.ADMIN: RoleDefinition(
        name=RoleName.ADMIN,
        display_name="👑 Администратор",
        permissions=frozenset(Capability),
    ),
    RoleName.LAWYER: RoleDefinition(
        name=RoleName.LAWYER,
        display_name="⚖️ Юрист",
        permissions=frozenset(
            {
                Capability.VIEW_CASES,
                Capability.VIEW_ALL_CASES,
                Capability.SEARCH_CASES,
                Capability.ADD_DATE,
                Capability.RESCHEDULE_HEARING,
                Capability.EDIT_CASE,
                Capability.VIEW_REPORTS,
            }
        ),
    ),
    RoleName.SECRETARY: RoleDefinition(
        name=RoleName.SECRETARY,
        display_name="📋 Секретарь",
        permissions=frozenset(
            {
                Capability.VIEW_CASES,
                Capability.VIEW_ALL_CASES,
                Capability.SEARCH_CASES,
                Capability.ADD_DATE,
                Capability.RESCHEDULE_HEARING,
            }
        ),
    ),
    RoleName.USER: RoleDefinition(
        name=RoleName.USER,
        display_name="👤 Пользователь",
        permissions=frozenset({Capability.VIEW_CASES, Capability.SEARCH_CASES}),
    ),
    RoleName.GUEST: RoleDefinition(
        name=RoleName.GUEST,
        display_name="🚫 Гость",
        permissions=frozenset(),
    ),
}

# Порядок важен: "администратор" проверяется раньше "пользователь" и т.д.
_ROLE_KEYWORDS: list[tuple[RoleName, tuple[str, ...]]] = [
    (RoleName.ADMIN, ("admin", "администратор")),
    (RoleName.LAWYER, ("lawyer", "юрист", "manager", "менеджер")),
    (RoleName.SECRETARY, ("secretary", "секретарь", "assistant", "ассистент", "помощник")),
    (RoleName.USER, ("user", "пользователь")),
]


def map_role_from_sheet(role_text: str | None) -> RoleName:
    """Сопоставляет произвольную строку роли из таблицы с внутренней ролью."""
    normalized = (role_text or "").strip().lower()
    if not normalized:
        return RoleName.GUEST
    for role_name, keywords in _ROLE_KEYWORDS:
        if any(keyword in normalized for keyword in keywords):
            return role_name
    return RoleName.GUEST


def get_role(role_name: RoleName | str | None) -> RoleDefinition:
    """Возвращает определение роли, для неизвестного имени - роль гостя."""
    try:
        return ROLES[RoleName(role_name)]
    except ValueError:
        return ROLES[RoleName.GUEST]


def format_permissions(role: RoleDefinition) -> str:
    """Список прав роли для профиля пользователя."""
    lines = [
        f"✅ {label}"
        for capability, label in CAPABILITY_LABELS.items()
        if capability in role.permissions
    ]
    return "\n".join(lines) if lines else "—"
