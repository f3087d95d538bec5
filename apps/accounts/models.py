import secrets

from django.db import models
from django.contrib.auth.models import User
from django.core.validators import RegexValidator
from django.utils import timezone as django_timezone

from .validators import calculate_age


class Member(models.Model):
    """
    A person known to the club: socio, coach or administrator.

    Login credentials live on the linked Django ``User`` (username is the
    DNI). Family dependents under 12 have no user and no email of their
    own; they are reached through their head of household.
    """
    ROLE_SOCIO = 'SOCIO'
    ROLE_COACH = 'ENTRENADOR'
    ROLE_ADMIN = 'ADMIN'
    ROLE_SUPER_ADMIN = 'SUPER_ADMIN'

    ROLE_CHOICES = [
        (ROLE_SOCIO, 'Socio'),
        (ROLE_COACH, 'Entrenador'),
        (ROLE_ADMIN, 'Administrador'),
        (ROLE_SUPER_ADMIN, 'Super administrador'),
    ]

    INDIVIDUAL = 'INDIVIDUAL'
    FAMILIAR = 'FAMILIAR'

    MEMBERSHIP_CHOICES = [
        (INDIVIDUAL, 'Plan individual'),
        (FAMILIAR, 'Plan familiar'),
    ]

    user = models.OneToOneField(
        User,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='member',
        help_text="Login account; empty for dependents under 12"
    )

    dni = models.CharField(
        max_length=8,
        unique=True,
        validators=[
            RegexValidator(regex=r'^\d{7,8}$', message='The DNI must have 7 or 8 digits'),
        ],
    )
    name = models.CharField(max_length=120)
    birth_date = models.DateField()
    email = models.EmailField(
        unique=True,
        null=True,
        blank=True,
        help_text="Empty for dependents under 12 (they use the head's contact data)"
    )
    phone = models.CharField(max_length=20, blank=True)
    address = models.CharField(max_length=200, blank=True)

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=ROLE_SOCIO)

    # Family plan
    membership_type = models.CharField(
        max_length=20,
        choices=MEMBERSHIP_CHOICES,
        null=True,
        blank=True,
        help_text="Only meaningful for socios"
    )
    family_group = models.CharField(
        max_length=40,
        null=True,
        blank=True,
        db_index=True,
        help_text="Shared by every member of one family plan"
    )
    head = models.ForeignKey(
        'self',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='dependents',
        help_text="Head of household who created the family plan"
    )
    is_minor = models.BooleanField(default=False, help_text="Under 12 when registered")

    registered_at = models.DateTimeField(default=django_timezone.now)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        indexes = [
            models.Index(fields=['role', 'membership_type'], name='member_role_plan_idx'),
        ]
        constraints = [
            models.CheckConstraint(
                condition=~models.Q(membership_type='FAMILIAR') | models.Q(family_group__isnull=False),
                name='member_familiar_has_group',
            ),
            models.CheckConstraint(
                condition=~models.Q(membership_type='INDIVIDUAL') | (
                    models.Q(family_group__isnull=True) & models.Q(head__isnull=True)
                ),
                name='member_individual_has_no_group',
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.dni})"

    @property
    def age(self):
        return calculate_age(self.birth_date)

    @property
    def is_socio(self):
        return self.role == self.ROLE_SOCIO

    @property
    def is_family(self):
        return self.membership_type == self.FAMILIAR and bool(self.family_group)

    @property
    def is_family_head(self):
        """The head is the family member without a head reference."""
        return self.is_family and self.head_id is None

    @property
    def is_club_admin(self):
        return self.role in (self.ROLE_ADMIN, self.ROLE_SUPER_ADMIN)

    @property
    def contact_email(self):
        """Own email, or the head's for dependents."""
        if self.email:
            return self.email
        if self.head_id:
            return self.head.email
        return None

    @classmethod
    def new_family_group_id(cls):
        return f"PF-{secrets.token_hex(8)}"

    @classmethod
    def get_group_members(cls, group_id, lock=False):
        """All socios sharing ``group_id``, optionally row-locked."""
        qs = cls.objects.filter(family_group=group_id, role=cls.ROLE_SOCIO)
        if lock:
            qs = qs.select_for_update()
        return list(qs.order_by('birth_date', 'pk'))


class MemberRemoval(models.Model):
    """
    Audit record written whenever a member is deleted.

    Keeps a snapshot of the removed member because the row itself is gone.
    """
    member_id_snapshot = models.BigIntegerField()
    name = models.CharField(max_length=120)
    dni = models.CharField(max_length=8)
    email = models.EmailField(blank=True)
    role = models.CharField(max_length=20, choices=Member.ROLE_CHOICES)

    performed_by = models.ForeignKey(
        Member,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='removals_performed',
    )
    reason = models.TextField(blank=True)
    removed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-removed_at']
        indexes = [
            models.Index(fields=['dni'], name='member_removal_dni_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.dni}) removed {self.removed_at:%Y-%m-%d}"

    @classmethod
    def record(cls, member, performed_by=None, reason='', email=None):
        return cls.objects.create(
            member_id_snapshot=member.pk,
            name=member.name,
            dni=member.dni,
            email=email if email is not None else (member.contact_email or ''),
            role=member.role,
            performed_by=performed_by,
            reason=reason,
        )


class EmailLog(models.Model):
    """
    One attempted email delivery, kept whether it went out or failed.
    """
    TYPE_MEMBER_REMOVED = 'MEMBER_REMOVED'
    TYPE_DEPENDENT_REMOVED = 'DEPENDENT_REMOVED'
    TYPE_PLAN_CHANGED = 'PLAN_CHANGED'
    TYPE_PAYMENT_RECEIPT = 'PAYMENT_RECEIPT'

    TYPE_CHOICES = [
        (TYPE_MEMBER_REMOVED, 'Member removed'),
        (TYPE_DEPENDENT_REMOVED, 'Dependent removed'),
        (TYPE_PLAN_CHANGED, 'Plan changed'),
        (TYPE_PAYMENT_RECEIPT, 'Payment receipt'),
    ]

    STATUS_SENT = 'SENT'
    STATUS_FAILED = 'FAILED'

    STATUS_CHOICES = [
        (STATUS_SENT, 'Sent'),
        (STATUS_FAILED, 'Failed'),
    ]

    recipient = models.EmailField()
    subject = models.CharField(max_length=200)
    email_type = models.CharField(max_length=30, choices=TYPE_CHOICES)
    status = models.CharField(max_length=10, choices=STATUS_CHOICES)
    error = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['email_type', 'status'], name='email_log_type_status_idx'),
        ]

    def __str__(self):
        return f"{self.get_email_type_display()} to {self.recipient} ({self.status})"
