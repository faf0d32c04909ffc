from __future__ import annotations

import logging
import sys

from trackit.config import SETTINGS
from trackit.infra.db import init_db
from trackit.infra.logging import setup_logging
from trackit.infra.notifications import NotificationRepository
from trackit.infra.repository import TaskRepository, ensure_counters
from trackit.services.notifications import NotificationEmitter, ReminderService

logger = logging.getLogger(__name__)


def main() -> int:
    setup_logging()
    try:
        init_db()
    except Exception:  # noqa: BLE001
        logger.exception("Database is not reachable")
        return 1

    ensure_counters()
    reminders = ReminderService(TaskRepository(), NotificationEmitter(NotificationRepository()))
    sent = reminders.send_due_date_reminders(SETTINGS.due_reminder_days)
    logger.info("Reminder sweep finished: %s notifications", sent)
    return 0


if __name__ == "__main__":
    sys.exit(main())
