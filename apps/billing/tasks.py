"""
Celery tasks for dues generation and payment receipts.
"""
from celery import shared_task
from django.utils import timezone
import logging

logger = logging.getLogger(__name__)


@shared_task
def generate_current_month_dues():
    """
    Create this month's dues. Scheduled by Celery beat on the 1st.
    """
    from .services import generate_monthly_dues

    today = timezone.localdate()
    created = generate_monthly_dues(today.year, today.month)
    return f"Created {created} dues for {today.month:02d}/{today.year}"


@shared_task
def send_payment_receipt_email(payment_id):
    """
    Email a receipt for a completed payment.
    """
    from apps.accounts.models import EmailLog
    from apps.accounts.notifications import deliver, get_club_name
    from .models import Payment

    try:
        payment = Payment.objects.select_related('member', 'member__head').get(id=payment_id)
    except Payment.DoesNotExist:
        return f"Payment {payment_id} not found"

    recipient = payment.member.contact_email
    if not recipient:
        return f"Payment {payment_id} has no contact email"

    context = {
        'dni': payment.member.dni,
        'name': payment.member.name,
        'concept': payment.get_payment_type_display(),
        'amount': payment.amount,
        'paid_at': payment.paid_at,
        'token': payment.token,
    }
    sent = deliver(
        subject=f"{get_club_name()} payment receipt",
        template='billing/emails/payment_receipt.txt',
        context=context,
        recipient=recipient,
        email_type=EmailLog.TYPE_PAYMENT_RECEIPT,
    )
    return f"Receipt for payment {payment_id}: {'sent' if sent else 'failed'}"


def queue_payment_receipt(payment_id):
    try:
        send_payment_receipt_email.delay(payment_id)
    except Exception as e:
        logger.warning(f"Failed to queue receipt email for payment {payment_id}: {e}")
