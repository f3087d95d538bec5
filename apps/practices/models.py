from django.db import models
from django.core.validators import MaxLengthValidator, MinValueValidator
from django.utils import timezone as django_timezone

from apps.accounts.models import Member


class Practice(models.Model):
    """A sports practice members can enroll in, led by one or more coaches."""
    name = models.CharField(max_length=60, unique=True)
    description = models.CharField(
        max_length=150,
        blank=True,
        validators=[MaxLengthValidator(150)],
    )
    capacity = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Maximum number of active enrollments"
    )
    price = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Monthly price charged per enrollment"
    )
    coaches = models.ManyToManyField(
        Member,
        blank=True,
        related_name='coached_practices',
        limit_choices_to={'role': Member.ROLE_COACH},
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']

    def __str__(self):
        return self.name

    def active_enrollment_count(self):
        return self.enrollments.filter(active=True).count()

    @property
    def spots_left(self):
        return max(self.capacity - self.active_enrollment_count(), 0)


class PracticeSchedule(models.Model):
    """One weekly time block of a practice."""
    DAY_CHOICES = [
        ('LUNES', 'Lunes'),
        ('MARTES', 'Martes'),
        ('MIERCOLES', 'Miércoles'),
        ('JUEVES', 'Jueves'),
        ('VIERNES', 'Viernes'),
        ('SABADO', 'Sábado'),
        ('DOMINGO', 'Domingo'),
    ]
    DAYS = [code for code, _ in DAY_CHOICES]

    practice = models.ForeignKey(
        Practice,
        on_delete=models.CASCADE,
        related_name='schedules'
    )
    day = models.CharField(max_length=10, choices=DAY_CHOICES)
    start_time = models.TimeField()
    end_time = models.TimeField()

    class Meta:
        ordering = ['practice', 'day', 'start_time']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(start_time__lt=models.F('end_time')),
                name='schedule_starts_before_end',
            ),
        ]

    def __str__(self):
        return f"{self.practice.name}: {self.day} {self.start_time:%H:%M}-{self.end_time:%H:%M}"


class Enrollment(models.Model):
    member = models.ForeignKey(
        Member,
        on_delete=models.CASCADE,
        related_name='enrollments'
    )
    practice = models.ForeignKey(
        Practice,
        on_delete=models.CASCADE,
        related_name='enrollments'
    )
    active = models.BooleanField(default=True)
    enrolled_at = models.DateTimeField(default=django_timezone.now)

    class Meta:
        ordering = ['-enrolled_at']
        constraints = [
            models.UniqueConstraint(
                fields=['member', 'practice'],
                name='enrollment_unique_member_practice',
            ),
        ]
        indexes = [
            models.Index(fields=['practice', 'active'], name='enrollment_practice_idx'),
        ]

    def __str__(self):
        state = 'active' if self.active else 'inactive'
        return f"{self.member.name} in {self.practice.name} ({state})"


class Attendance(models.Model):
    enrollment = models.ForeignKey(
        Enrollment,
        on_delete=models.CASCADE,
        related_name='attendance'
    )
    date = models.DateField()
    present = models.BooleanField(default=False)
    recorded_by = models.ForeignKey(
        Member,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='attendance_recorded'
    )
    recorded_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-date']
        constraints = [
            models.UniqueConstraint(
                fields=['enrollment', 'date'],
                name='attendance_unique_enrollment_date',
            ),
        ]

    def __str__(self):
        return f"{self.enrollment.member.name} {self.date}: {'present' if self.present else 'absent'}"
