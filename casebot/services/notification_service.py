"""
Сервис уведомлений о предстоящих заседаниях и процессуальных сроках.
"""

import html
import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from telegram import Bot
from telegram.constants import ParseMode

from casebot.core.columns import CaseColumn
from casebot.core.config import Settings, settings
from casebot.core.dates import days_until, format_datetime, parse_date
from casebot.models.case import CaseRecord
from casebot.models.role import get_role
from casebot.models.user import User
from casebot.services.case_service import CaseService, visible_cases
from casebot.services.user_service import UserService

logger = logging.getLogger(__name__)

# Колонки с датами, о которых нужно напоминать
EVENT_COLUMNS: dict[CaseColumn, str] = {
    CaseColumn.HEARING_DATE: "Судебное заседание",
    CaseColumn.OBJECTION_DEADLINE: "Срок возражений",
    CaseColumn.FIRST_APPEAL_DEADLINE: "Срок обжалования решения",
    CaseColumn.APPELLATE_DEADLINE: "Срок обжалования апелляции",
    CaseColumn.CASSATION_DEADLINE: "Срок обжалования кассации",
}


@dataclass(frozen=True)
class CaseEvent:
    case: CaseRecord
    label: str
    event_at: datetime


@dataclass(frozen=True)
class NotificationReport:
    cases_checked: int
    notifications_sent: int


def collect_events(cases: list[CaseRecord]) -> list[CaseEvent]:
    """Все распознанные даты заседаний и сроков по делам."""
    events = []
    for case in cases:
        for column, label in EVENT_COLUMNS.items():
            event_at = parse_date(getattr(case, column.field_name))
            if event_at:
                events.append(CaseEvent(case=case, label=label, event_at=event_at))
    return events


def _days_text(days: int) -> str:
    if days == 1:
        return "завтра"
    return f"через {days} дн."


def format_event_message(event: CaseEvent, days: int) -> str:
    case = event.case
    esc = html.escape
    lines = [
        "🔔 <b>УВЕДОМЛЕНИЕ О СРОКЕ</b>",
        "",
        f"⚖️ <b>Дело:</b> {esc(case.title)}",
        f"👤 <b>Истец:</b> {esc(case.plaintiff or 'Не указан')}",
        f"👥 <b>Ответчик:</b> {esc(case.defendant or 'Не указан')}",
        "",
        f"📌 <b>{esc(event.label)}:</b> {format_datetime(event.event_at)}",
        f"⏰ <b>Наступает {_days_text(days)}!</b>",
    ]
    if case.court:
        lines.append(f"🏛️ <b>Суд:</b> {esc(case.court)}")
    if case.lawyer:
        lines.append(f"⚖️ <b>Юрист:</b> {esc(case.lawyer)}")
    lines += ["", "<i>Не забудьте подготовить необходимые документы</i>"]
    return "\n".join(lines)


class NotificationService:
    def __init__(
        self,
        case_service: CaseService,
        user_service: UserService,
        config: Settings = settings,
    ):
        self.case_service = case_service
        self.user_service = user_service
        self._config = config

    def _recipients(self, users: list[User], case: CaseRecord) -> list[User]:
        return [
            user
            for user in users
            if user.telegram_notifications
            and visible_cases([case], user, get_role(user.role))
        ]

    async def check_and_send(self, bot: Bot, now: datetime | None = None) -> NotificationReport:
        """
        Проверяет даты по всем делам и рассылает напоминания.

        Напоминание отправляется, если до события осталось ровно N календарных
        дней, где N - из настройки NOTIFICATION_DAYS.
        """
        now = now or datetime.now(timezone.utc)
        logger.info("Checking upcoming hearings and deadlines...")

        cases = await self.case_service.get_cases()
        events = collect_events(cases)
        cases_checked = len({event.case.row_index for event in events})
        users = await self.user_service.get_all_users()
        logger.info(f"Cases with dates: {cases_checked}, users: {len(users)}.")

        notifications_sent = 0
        for event in events:
            days = days_until(event.event_at, now, self._config.display_timezone)
            if days not in self._config.notification_days:
                continue

            logger.info(
                f"{event.label} for case {event.case.title} in {days} days ({format_datetime(event.event_at)})."
            )
            text = format_event_message(event, days)
            for user in self._recipients(users, event.case):
                if await self._send(bot, user.telegram_id, text, event.case):
                    notifications_sent += 1

        logger.info(f"Notifications sent: {notifications_sent}.")
        return NotificationReport(cases_checked=cases_checked, notifications_sent=notifications_sent)

    @staticmethod
    async def _send(bot: Bot, chat_id: int, text: str, case: CaseRecord) -> bool:
        try:
            await bot.send_message(chat_id=chat_id, text=text, parse_mode=ParseMode.HTML)
            logger.info(f"Sent notification for case {case.title} to chat {chat_id}.")
            return True
        except Exception as e:
            logger.error(
                f"Failed to send notification for case {case.title} to chat {chat_id}: {e}",
                exc_info=True,
            )
            return False
