"""
Celery tasks for membership email notifications.
"""
from celery import shared_task
import logging

from . import notifications

logger = logging.getLogger(__name__)


@shared_task
def send_member_removed_email(snapshot):
    """
    Notify a removed member. ``snapshot`` comes from
    ``notifications.member_snapshot`` taken before the delete.
    """
    sent = notifications.send_removal_email(snapshot)
    return f"Removal email for {snapshot['dni']}: {'sent' if sent else 'skipped'}"


@shared_task
def send_plan_changed_email(snapshot, new_plan, summary=''):
    sent = notifications.send_plan_change_email(snapshot, new_plan, summary)
    return f"Plan change email for {snapshot['dni']}: {'sent' if sent else 'skipped'}"


def queue_removal_email(snapshot):
    """Queue a removal email without letting broker errors escape."""
    try:
        send_member_removed_email.delay(snapshot)
    except Exception as e:
        logger.warning(f"Failed to queue removal email for {snapshot['dni']}: {e}")


def queue_plan_change_email(snapshot, new_plan, summary=''):
    try:
        send_plan_changed_email.delay(snapshot, new_plan, summary)
    except Exception as e:
        logger.warning(f"Failed to queue plan change email for {snapshot['dni']}: {e}")
