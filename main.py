#!/usr/bin/env python3
# main.py
"""
Точка входа: поднимает инфраструктуру маркетплейса и держит процесс
до сигнала остановки.
"""

from __future__ import annotations

import asyncio
import signal

from ridebid.app import shutdown, startup
from ridebid.common.constants import TypeMsg
from ridebid.common.logger import log_error, log_info


def setup_signal_handlers(shutdown_event: asyncio.Event) -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    loop = asyncio.get_running_loop()
    try:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, shutdown_event.set)
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: shutdown_event.set())
        signal.signal(signal.SIGTERM, lambda s, f: shutdown_event.set())


async def main() -> None:
    shutdown_event = asyncio.Event()
    setup_signal_handlers(shutdown_event)

    marketplace = await startup()
    try:
        health = await marketplace.health_check()
        await log_info(f"Состояние подключений: {health}", type_msg=TypeMsg.INFO)
        if not all(health.values()):
            await log_error(f"Часть инфраструктуры недоступна: {health}")

        await shutdown_event.wait()
        await log_info("Получен сигнал остановки, завершаем работу...", type_msg=TypeMsg.INFO)
    finally:
        await shutdown(marketplace)


if __name__ == "__main__":
    asyncio.run(main())
