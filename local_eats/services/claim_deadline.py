import asyncio
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlmodel import Session

from ..settings import Settings
from .cook_assignment import auto_reject_expired
from .delivery_claim import escalate_unclaimed
from .notifications import Notifier

logger = logging.getLogger(__name__)


class DeadlineSweepService:
    """
    Фоновая проверка сроков.

    - назначения, на которые повар не ответил вовремя, получают auto_rejected;
    - заказы, которые никто из доставщиков не взял вовремя, эскалируются.
    """

    def __init__(self, settings: Settings, notifier: Optional[Notifier] = None):
        self.settings = settings
        self.notifier = notifier
        self.is_running = False

    async def start(self, session_factory: Callable[[], Session]):
        """Запускает фоновый цикл проверки"""
        self.is_running = True
        logger.info("Deadline sweep service started")

        while self.is_running:
            try:
                await asyncio.to_thread(self.run_once, session_factory)
                await asyncio.sleep(self.settings.sweep_interval_seconds)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Error in deadline sweep: {e}", exc_info=True)
                await asyncio.sleep(60)  # Ждем минуту при ошибке

    def run_once(self, session_factory: Callable[[], Session], now: Optional[datetime] = None) -> dict:
        now = now or datetime.now()
        with session_factory() as session:
            rejected = auto_reject_expired(session, self.settings.cook_accept_cutoff_seconds, self.notifier, now)
            rejected_ids = [a.id for a in rejected]
        with session_factory() as session:
            escalated = escalate_unclaimed(session, self.settings.delivery_claim_cutoff_seconds, self.notifier, now)
            escalated_ids = [o.id for o in escalated]

        if rejected_ids or escalated_ids:
            logger.info(f"Deadline sweep: {len(rejected_ids)} assignments auto-rejected, {len(escalated_ids)} orders escalated")
        return {"auto_rejected": rejected_ids, "escalated": escalated_ids}

    def stop(self):
        """Остановка сервиса"""
        self.is_running = False
        logger.info("Deadline sweep service stopped")
