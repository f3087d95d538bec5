"""
Email notifications for membership changes.

Every function takes plain snapshot dicts rather than model instances,
because by the time an email goes out the member row may already be gone.
Each delivery attempt is recorded as an ``EmailLog``.
"""
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string
import logging

from .models import EmailLog

logger = logging.getLogger(__name__)


def get_club_name():
    return getattr(settings, 'CLUB_NAME', 'Club')


def member_snapshot(member, reason=''):
    """Capture what the removal and plan-change emails need."""
    return {
        'member_id': member.pk,
        'name': member.name,
        'dni': member.dni,
        'email': member.contact_email,
        'is_minor': member.is_minor or not member.user_id,
        'membership_type': member.membership_type,
        'family_group': member.family_group,
        'reason': reason,
    }


def deliver(subject, template, context, recipient, email_type):
    """
    Render ``template`` and send it to ``recipient``.

    Returns True when the message went out. Failures are logged and stored
    with their error, never raised.
    """
    if not recipient:
        logger.info(f"No contact email for {context.get('dni')}, skipping '{subject}'")
        return False

    context = {'club_name': get_club_name(), **context}
    plain_message = render_to_string(template, context)

    try:
        send_mail(
            subject=subject,
            message=plain_message,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[recipient],
            fail_silently=False,
        )
    except Exception as e:
        logger.error(f"Failed to send '{subject}' email to {recipient}: {e}")
        EmailLog.objects.create(
            recipient=recipient,
            subject=subject[:200],
            email_type=email_type,
            status=EmailLog.STATUS_FAILED,
            error=str(e),
        )
        return False

    EmailLog.objects.create(
        recipient=recipient,
        subject=subject[:200],
        email_type=email_type,
        status=EmailLog.STATUS_SENT,
    )
    logger.info(f"'{subject}' email sent to {recipient}")
    return True


def send_removal_email(snapshot):
    """
    Tell a removed member (or, for a dependent, their head) about the removal.
    """
    if snapshot.get('is_minor'):
        return deliver(
            subject=f"{snapshot['name']} is no longer a member of {get_club_name()}",
            template='accounts/emails/dependent_removed.txt',
            context=snapshot,
            recipient=snapshot.get('email'),
            email_type=EmailLog.TYPE_DEPENDENT_REMOVED,
        )
    return deliver(
        subject=f"Your {get_club_name()} membership was removed",
        template='accounts/emails/member_removed.txt',
        context=snapshot,
        recipient=snapshot.get('email'),
        email_type=EmailLog.TYPE_MEMBER_REMOVED,
    )


def send_plan_change_email(snapshot, new_plan, summary=''):
    context = {**snapshot, 'new_plan': new_plan, 'summary': summary}
    return deliver(
        subject=f"Your {get_club_name()} membership plan changed",
        template='accounts/emails/plan_changed.txt',
        context=context,
        recipient=snapshot.get('email'),
        email_type=EmailLog.TYPE_PLAN_CHANGED,
    )
