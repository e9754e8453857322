"""Telegram delivery for notifications and alarms."""

import html
import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, List

from telegram import Bot
from telegram.constants import ParseMode
from telegram.error import Forbidden, TelegramError
from telegram.ext import ContextTypes, JobQueue

from daycounter.engine.alarms import AlarmPayload, AlarmService, Notifier
from daycounter.utils.errors import PermissionDeniedError

logger = logging.getLogger(__name__)


class TelegramNotifier(Notifier):
    """Sends notifications to the chat that registered with /start.

    Having a chat id is what "permission granted" means here; a chat that
    blocks the bot revokes it.
    """

    def __init__(self, bot: Bot, chat_id: int | None = None):
        self.bot = bot
        self.chat_id = chat_id

    @property
    def granted(self) -> bool:
        return self.chat_id is not None

    async def notify(self, title: str, message: str) -> None:
        if self.chat_id is None:
            raise PermissionDeniedError("No chat registered for notifications (send /start)")

        text = f"🔔 <b>{html.escape(title)}</b>\n\n{html.escape(message)}"
        try:
            await self.bot.send_message(
                chat_id=self.chat_id, text=text, parse_mode=ParseMode.HTML
            )
        except Forbidden as e:
            logger.warning(f"Chat {self.chat_id} blocked the bot, notifications disabled")
            self.chat_id = None
            raise PermissionDeniedError(f"Bot was blocked: {e}") from e
        except TelegramError as e:
            # Not retried: the next alarm gets a fresh attempt
            logger.error(f"Failed to send notification to {self.chat_id}: {e}")


AlarmCallback = Callable[[AlarmPayload], Awaitable[object]]


class TelegramAlarmService(AlarmService):
    """AlarmService on top of the python-telegram-bot JobQueue.

    Jobs are named after alarm keys. Permission follows the notifier.
    """

    def __init__(self, job_queue: JobQueue, on_fire: AlarmCallback, notifier: TelegramNotifier):
        self.job_queue = job_queue
        self.on_fire = on_fire
        self.notifier = notifier

    async def _run(self, context: ContextTypes.DEFAULT_TYPE) -> None:
        """Job callback: hand the payload to the dispatcher."""
        if context.job is None:
            return
        await self.on_fire(context.job.data)

    def _remove(self, key: str) -> None:
        for job in self.job_queue.get_jobs_by_name(key):
            job.schedule_removal()

    async def schedule_one_shot(
        self, key: str, when: datetime, payload: AlarmPayload
    ) -> None:
        if not self.notifier.granted:
            raise PermissionDeniedError("No chat registered for notifications")
        self._remove(key)
        self.job_queue.run_once(self._run, when=when, data=payload, name=key)

    async def schedule_repeating(
        self, key: str, first: datetime, interval: timedelta, payload: AlarmPayload
    ) -> None:
        if not self.notifier.granted:
            raise PermissionDeniedError("No chat registered for notifications")
        self._remove(key)
        self.job_queue.run_repeating(
            self._run, interval=interval, first=first, data=payload, name=key
        )

    async def cancel(self, key: str) -> None:
        self._remove(key)

    async def cancel_all(self) -> None:
        for job in self.job_queue.jobs():
            job.schedule_removal()

    async def request_permission(self) -> bool:
        return self.notifier.granted

    async def get_permission_status(self) -> bool:
        return self.notifier.granted

    def scheduled_keys(self) -> List[str]:
        return [job.name for job in self.job_queue.jobs() if job.name and not job.removed]
