"""
Создание сервисов приложения.

Бот и HTTP API используют один и тот же набор сервисов, поэтому кэш ролей
в процессе один.
"""

import logging
from dataclasses import dataclass

from casebot.core.config import Settings, settings
from casebot.services.case_service import CaseService
from casebot.services.client_service import ClientService
from casebot.services.google_api import GoogleSheetsService
from casebot.services.notification_service import NotificationService
from casebot.services.permissions import PermissionGate
from casebot.services.user_service import UserService

logger = logging.getLogger(__name__)


@dataclass
class Services:
    google_api: GoogleSheetsService
    user_service: UserService
    permission_gate: PermissionGate
    case_service: CaseService
    client_service: ClientService
    notification_service: NotificationService


def build_services(config: Settings = settings) -> Services:
    logger.info("Initializing services...")
    google_api = GoogleSheetsService(config)
    user_service = UserService.from_sheets(google_api, config)
    case_service = CaseService(google_api, config)
    return Services(
        google_api=google_api,
        user_service=user_service,
        permission_gate=PermissionGate(user_service),
        case_service=case_service,
        client_service=ClientService(google_api, case_service, config),
        notification_service=NotificationService(case_service, user_service, config),
    )
