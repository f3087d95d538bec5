"""Exceptions raised by the billing services."""
from apps.accounts.exceptions import ClubError


class BillingError(ClubError):
    code = 'billing_error'
    default_message = 'Invalid billing operation.'


class PaymentRejected(BillingError):
    """The card gateway declined the charge."""
    code = 'payment_rejected'
    default_message = 'The payment was rejected by the card gateway.'


class InvalidCard(BillingError):
    code = 'invalid_card'
    default_message = 'Invalid test card. Use 4242 (approved) or 0002 (rejected).'


class AlreadyPaid(BillingError):
    code = 'already_paid'
    default_message = 'This charge has already been paid.'
