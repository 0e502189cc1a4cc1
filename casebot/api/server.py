"""
HTTP API для мини-приложения и webhook Telegram.

Сервер и бот работают в одном процессе и используют общие сервисы:
кэш ролей и блокировка записи в таблицу одни на всех.
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel
from telegram import Update
from telegram.ext import Application

from casebot.bot import build_application
from casebot.core.columns import TOTAL_COLUMNS
from casebot.core.config import Settings, settings
from casebot.core.exceptions import InsufficientPermissionError, RemoteFetchError
from casebot.core.logging_config import setup_logging
from casebot.dependencies import Services, build_services
from casebot.models.role import get_role
from casebot.services.row_parser import TELEGRAM_ID_RE

logger = logging.getLogger(__name__)


class UpdateCaseRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    row_index: int
    column_index: int
    value: str | int | float | bool


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def create_app(services: Services, telegram_app: Application | None = None) -> FastAPI:
    """
    Создает FastAPI-приложение.

    Если передан telegram_app, он инициализируется при старте сервера
    и принимает обновления через POST /webhook.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if telegram_app is not None:
            await telegram_app.initialize()
            logger.info("Telegram application initialized for webhook mode.")
        yield
        if telegram_app is not None:
            await telegram_app.shutdown()
            logger.info("Telegram application shut down.")

    app = FastAPI(title="Casebot API", version="0.1.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.get("/health")
    async def health():
        return {"ok": True, "message": "Server is running", "timestamp": _timestamp()}

    @app.post("/webhook")
    async def webhook(request: Request):
        # Telegram повторяет доставку при любом ответе кроме 200
        if telegram_app is None:
            return {"ok": True, "error": "Bot is not configured for webhook mode"}
        try:
            data = await request.json()
            update = Update.de_json(data, telegram_app.bot)
            await telegram_app.process_update(update)
        except Exception as e:
            logger.error(f"Failed to process webhook update: {e}", exc_info=True)
            return {"ok": True, "error": str(e)}
        return {"ok": True}

    @app.get("/api/cases")
    async def get_cases():
        try:
            cases = await services.case_service.get_cases(with_hyperlinks=True)
        except RemoteFetchError as e:
            logger.error(f"Failed to load cases for API: {e}")
            return _error(500, str(e))
        return {
            "success": True,
            "cases": [case.model_dump(mode="json", by_alias=True) for case in cases],
            "count": len(cases),
            "timestamp": _timestamp(),
        }

    @app.post("/api/update-case")
    async def update_case(request: Request):
        try:
            payload = UpdateCaseRequest.model_validate(await request.json())
        except (ValueError, ValidationError) as e:
            logger.warning(f"Invalid update-case request: {e}")
            return _error(400, "Missing required fields: rowIndex, columnIndex, value")

        if payload.row_index < 1:
            return _error(400, "Cannot edit header row")
        if not 0 <= payload.column_index < TOTAL_COLUMNS:
            return _error(400, f"Column index must be between 0 and {TOTAL_COLUMNS - 1}")

        try:
            await services.case_service.update_cell(
                payload.row_index, payload.column_index, payload.value
            )
        except InsufficientPermissionError as e:
            logger.warning(f"Update-case rejected: {e}")
            return _error(403, str(e))
        except Exception as e:
            logger.error(f"Failed to update case cell: {e}", exc_info=True)
            return _error(500, str(e))

        return {
            "success": True,
            "message": "Cell updated successfully",
            "data": payload.model_dump(by_alias=True),
        }

    @app.get("/api/roles")
    async def get_user_role(telegram_id: str | None = None):
        if not telegram_id or not TELEGRAM_ID_RE.match(telegram_id.strip()):
            return _error(400, "Invalid telegram_id")
        user_id = int(telegram_id.strip())
        if user_id == 0:
            return _error(400, "Invalid telegram_id")

        user = await services.user_service.resolve(user_id)
        role = get_role(user.role)
        return {
            "success": True,
            "user": {
                "telegramId": user.telegram_id,
                "name": user.name,
                "email": user.email,
                "role": role.name.value,
                "roleDisplay": role.display_name,
                "permissions": role.permission_map(),
                "cases": user.cases,
            },
        }

    @app.post("/api/notifications")
    async def send_notifications():
        if telegram_app is None:
            return _error(500, "Bot is not configured")
        try:
            report = await services.notification_service.check_and_send(telegram_app.bot)
        except RemoteFetchError as e:
            logger.error(f"Notification check failed: {e}")
            return _error(500, str(e))
        return {
            "success": True,
            "casesChecked": report.cases_checked,
            "notificationsSent": report.notifications_sent,
            "timestamp": _timestamp(),
        }

    return app


def serve(config: Settings = settings) -> None:
    """Запускает HTTP API вместе с ботом в режиме webhook."""
    setup_logging()
    services = build_services(config)
    telegram_app = build_application(services, config)
    app = create_app(services, telegram_app)

    logger.info(f"Starting HTTP API on {config.api_host}:{config.api_port}...")
    uvicorn.run(app, host=config.api_host, port=config.api_port)


if __name__ == "__main__":
    serve()
