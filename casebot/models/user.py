"""
Модели данных, связанные с пользователем.
"""

from pydantic import BaseModel, Field

from casebot.models.role import RoleName


class User(BaseModel):
    """
    Модель пользователя, представляющая строку листа "Пользователи".

    Атрибуты:
        telegram_id (int): Уникальный идентификатор пользователя в Telegram.
        email (str): Рабочий email.
        name (str): Отображаемое имя.
        role (RoleName): Роль пользователя в системе.
        cases (list[str]): Номера дел, закрепленных за пользователем.
    """

    telegram_id: int = Field(..., description="Telegram User ID")
    email: str = ""
    name: str = ""
    role: RoleName = RoleName.GUEST
    email_notifications: bool = False
    telegram_notifications: bool = False
    sms_notifications: bool = False
    cases: list[str] = Field(default_factory=list)

    @classmethod
    def guest(cls, telegram_id: int) -> "User":
        """Пользователь, которого нет в таблице."""
        return cls(telegram_id=telegram_id)
