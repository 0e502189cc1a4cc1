"""
Общие настройки тестов.

Настройки читаются при импорте casebot.core.config, поэтому обязательные
переменные окружения задаются до импорта тестируемых модулей.
"""

import os

os.environ.setdefault("BOT_TOKEN", "123456:TEST-TOKEN")
os.environ.setdefault("GOOGLE_SHEET_ID", "test-sheet-id")
