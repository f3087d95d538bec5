from django.conf import settings
from django.db import models
from django.core.validators import MaxValueValidator, MinValueValidator

from apps.accounts.models import Member


class BillingSettings(models.Model):
    """Single row holding the club-wide billing configuration."""
    base_fee = models.PositiveIntegerField(help_text="Monthly fee of an individual plan")
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'billing settings'
        verbose_name_plural = 'billing settings'

    def __str__(self):
        return f"Base fee {self.base_fee}"

    @classmethod
    def load(cls):
        obj, _ = cls.objects.get_or_create(
            pk=1,
            defaults={'base_fee': settings.CLUB_BASE_MONTHLY_FEE},
        )
        return obj


class MonthlyDue(models.Model):
    """
    The monthly fee (cuota) a socio owes for one period.

    The amount is not stored: it depends on the member's current plan and
    the current base fee, see ``apps.billing.services.compute_monthly_fee``.
    """
    member = models.ForeignKey(
        Member,
        on_delete=models.CASCADE,
        related_name='dues'
    )
    year = models.PositiveIntegerField()
    month = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(12)]
    )
    due_date = models.DateField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['year', 'month']
        constraints = [
            models.UniqueConstraint(
                fields=['member', 'year', 'month'],
                name='due_unique_member_period',
            ),
        ]

    def __str__(self):
        return f"{self.period_label} - {self.member.name}"

    @property
    def period_label(self):
        return f"{self.month:02d}/{self.year}"

    @property
    def is_paid(self):
        return self.payments.filter(status=Payment.STATUS_PAID).exists()


class Payment(models.Model):
    """A card payment for a due, a practice enrollment or a court reservation."""
    STATUS_PENDING = 'PENDIENTE'
    STATUS_PAID = 'PAGADO'
    STATUS_REJECTED = 'RECHAZADO'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pendiente'),
        (STATUS_PAID, 'Pagado'),
        (STATUS_REJECTED, 'Rechazado'),
    ]

    TYPE_DUE = 'CUOTA_MENSUAL'
    TYPE_PRACTICE = 'PRACTICA_DEPORTIVA'
    TYPE_RESERVATION = 'RESERVA_CANCHA'

    TYPE_CHOICES = [
        (TYPE_DUE, 'Cuota mensual'),
        (TYPE_PRACTICE, 'Práctica deportiva'),
        (TYPE_RESERVATION, 'Reserva de cancha'),
    ]

    member = models.ForeignKey(
        Member,
        on_delete=models.CASCADE,
        related_name='payments'
    )
    amount = models.PositiveIntegerField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    payment_type = models.CharField(max_length=30, choices=TYPE_CHOICES)

    due = models.ForeignKey(
        MonthlyDue,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payments'
    )
    enrollment = models.ForeignKey(
        'practices.Enrollment',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payments'
    )
    reservation = models.ForeignKey(
        'courts.CourtReservation',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payments'
    )

    card_last4 = models.CharField(max_length=4, blank=True)
    token = models.CharField(max_length=64, blank=True, help_text="Gateway reference")

    created_at = models.DateTimeField(auto_now_add=True)
    paid_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['member', '-created_at'], name='payment_member_created_idx'),
            models.Index(fields=['status', '-created_at'], name='payment_status_created_idx'),
        ]

    def __str__(self):
        return f"{self.get_payment_type_display()} {self.amount} - {self.member.name} ({self.status})"
