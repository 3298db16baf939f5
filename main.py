#!/usr/bin/env python3
"""
Главный файл для запуска Altar API
"""

import logging
import os
import sys

# ✅ НАСТРОЙКА ЛОГИРОВАНИЯ ДО ИМПОРТА ПРИЛОЖЕНИЯ
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

# ✅ УМЕНЬШАЕМ УРОВЕНЬ ЛОГИРОВАНИЯ ДЛЯ ШУМНЫХ БИБЛИОТЕК
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
logging.getLogger("altar_api").setLevel(logging.INFO)

import uvicorn  # noqa: E402

from altar_api.app import app  # noqa: E402

if __name__ == '__main__':
    logger = logging.getLogger(__name__)
    logger.info("🚀 Запуск Altar API...")

    host = os.getenv("ALTAR_HOST", "127.0.0.1")
    port = int(os.getenv("ALTAR_PORT", "8000"))

    try:
        uvicorn.run(app, host=host, port=port, log_config=None)
    except Exception as e:
        logger.error(f"❌ Критическая ошибка при запуске API: {e}")
        sys.exit(1)
