"""Small dispatching helpers to decouple Celery from callers."""
from __future__ import annotations

from typing import Any, Dict

from ..config.celery import celery_app

SEND_SMS_TASK = "notifications.send_sms"


class TaskDispatcher:
    """Internal facade used by the composition root to schedule tasks."""

    def send_sms(self, phone: str, text: str) -> None:
        """Fire-and-forget customer SMS; publish is not retried so callers never stall."""
        self.enqueue(SEND_SMS_TASK, kwargs={"phone": phone, "text": text}, retry=False)

    def enqueue(
        self,
        task_name: str,
        *,
        args: tuple | None = None,
        kwargs: Dict[str, Any] | None = None,
        retry: bool = True,
    ) -> None:
        """Schedule a task by name. Eager mode runs registered tasks in-process."""
        if celery_app.conf.task_always_eager:
            # autodiscovery only runs inside a worker; web processes import task modules here
            celery_app.loader.import_default_modules()
            task = celery_app.tasks.get(task_name)
            if task is not None:
                task.apply(args=args or (), kwargs=kwargs or {})
                return
        celery_app.send_task(task_name, args=args or (), kwargs=kwargs or {}, retry=retry)
