"""
Проверка прав пользователя на действие.

Все проверки прав в боте и API проходят через PermissionGate.check.
"""

from dataclasses import dataclass

from casebot.models.role import CAPABILITY_LABELS, Capability, RoleDefinition, get_role
from casebot.models.user import User
from casebot.services.user_service import UserService


@dataclass(frozen=True)
class Allowed:
    user: User
    role: RoleDefinition

    allowed = True


@dataclass(frozen=True)
class Denied:
    user: User
    role: RoleDefinition
    capability: str
    message: str

    allowed = False


PermissionResult = Allowed | Denied


def capability_label(capability: Capability | str) -> str:
    try:
        return CAPABILITY_LABELS[Capability(capability)]
    except ValueError:
        return str(capability)


def denial_message(role: RoleDefinition, capability: Capability | str) -> str:
    return (
        "❌ <b>Доступ запрещен</b>\n\n"
        f"Ваша роль: {role.display_name}\n"
        f"Действие: {capability_label(capability)}\n\n"
        "Эта функция недоступна для вашей роли.\n"
        "Обратитесь к администратору для получения доступа."
    )


class PermissionGate:
    def __init__(self, user_service: UserService):
        self.user_service = user_service

    async def check(self, telegram_id: int, capability: Capability | str) -> PermissionResult:
        """Разрешено ли пользователю действие. Неизвестное право всегда запрещено."""
        user = await self.user_service.resolve(telegram_id)
        role = get_role(user.role)

        if role.allows(capability):
            return Allowed(user=user, role=role)

        capability_name = capability.value if isinstance(capability, Capability) else str(capability)
        return Denied(
            user=user,
            role=role,
            capability=capability_name,
            message=denial_message(role, capability),
        )
