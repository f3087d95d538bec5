from datetime import datetime, timedelta

from django.db import models
from django.core.validators import MinValueValidator

from apps.accounts.models import Member


class Court(models.Model):
    """A bookable court, rented in one-hour slots."""
    FUTBOL_5 = 'FUTBOL_5'
    FUTBOL = 'FUTBOL'
    BASQUET = 'BASQUET'

    TYPE_CHOICES = [
        (FUTBOL_5, 'Fútbol 5'),
        (FUTBOL, 'Fútbol'),
        (BASQUET, 'Básquet'),
    ]

    SLOT_MINUTES = 60

    number = models.PositiveIntegerField(
        unique=True,
        validators=[MinValueValidator(1)],
    )
    court_type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    location = models.CharField(max_length=100, blank=True)
    opens_at = models.TimeField(help_text="Start of the first bookable slot")
    closes_at = models.TimeField(help_text="End of the bookable day")
    price = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Price per one-hour slot"
    )
    practice = models.ForeignKey(
        'practices.Practice',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='courts',
        help_text="Practice that usually trains on this court"
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['number']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(opens_at__lt=models.F('closes_at')),
                name='court_opens_before_closing',
            ),
        ]

    def __str__(self):
        return f"Court {self.number} ({self.get_court_type_display()})"


class CourtReservation(models.Model):
    court = models.ForeignKey(
        Court,
        on_delete=models.CASCADE,
        related_name='reservations'
    )
    member = models.ForeignKey(
        Member,
        on_delete=models.CASCADE,
        related_name='court_reservations'
    )
    date = models.DateField()
    start_time = models.TimeField()
    paid = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['date', 'start_time']
        constraints = [
            models.UniqueConstraint(
                fields=['court', 'date', 'start_time'],
                name='reservation_unique_slot',
            ),
        ]
        indexes = [
            models.Index(fields=['member', 'date'], name='reservation_member_date_idx'),
        ]

    def __str__(self):
        return f"Court {self.court.number} on {self.date} at {self.start_time:%H:%M}"

    @property
    def end_time(self):
        start = datetime.combine(self.date, self.start_time)
        return (start + timedelta(minutes=Court.SLOT_MINUTES)).time()
