"""
Celery application for scheduled subscription maintenance.

Beat runs the status refresh once a day so lapsed subscriptions move to
expired/blocked even when their owners never open the app.
"""
import logging

from celery import Celery
from celery.schedules import crontab
from celery.signals import task_failure, task_postrun, task_prerun

from swiftlink.core.config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "swiftlink",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["swiftlink.tasks.subscription_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_acks_late=True,
    task_time_limit=300,
    task_soft_time_limit=240,
)

# Dates are compared in UTC, so the sweep runs just after UTC midnight by default
celery_app.conf.beat_schedule = {
    "refresh-subscription-statuses": {
        "task": "swiftlink.tasks.subscription_tasks.refresh_subscription_statuses",
        "schedule": crontab(hour=settings.status_refresh_hour_utc, minute=5),
    },
}


@task_prerun.connect
def log_task_start(task_id, task, *args, **kwargs):
    logger.info(f"Task starting: {task.name} (ID: {task_id})")


@task_postrun.connect
def log_task_done(task_id, task, *args, retval=None, **kwargs):
    logger.info(f"Task completed: {task.name} (ID: {task_id}) -> {retval}")


@task_failure.connect
def log_task_failure(task_id, exception, *args, **kwargs):
    logger.error(f"Task failed: {task_id}, Exception: {exception}")
