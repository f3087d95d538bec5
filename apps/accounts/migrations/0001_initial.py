# Generated migration for Member and MemberRemoval models

from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import django.utils.timezone


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Member',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('dni', models.CharField(max_length=8, unique=True, validators=[django.core.validators.RegexValidator(message='The DNI must have 7 or 8 digits', regex='^\\d{7,8}$')])),
                ('name', models.CharField(max_length=120)),
                ('birth_date', models.DateField()),
                ('email', models.EmailField(blank=True, help_text="Empty for dependents under 12 (they use the head's contact data)", max_length=254, null=True, unique=True)),
                ('phone', models.CharField(blank=True, max_length=20)),
                ('address', models.CharField(blank=True, max_length=200)),
                ('role', models.CharField(choices=[('SOCIO', 'Socio'), ('ENTRENADOR', 'Entrenador'), ('ADMIN', 'Administrador'), ('SUPER_ADMIN', 'Super administrador')], default='SOCIO', max_length=20)),
                ('membership_type', models.CharField(blank=True, choices=[('INDIVIDUAL', 'Plan individual'), ('FAMILIAR', 'Plan familiar')], help_text='Only meaningful for socios', max_length=20, null=True)),
                ('family_group', models.CharField(blank=True, db_index=True, help_text='Shared by every member of one family plan', max_length=40, null=True)),
                ('is_minor', models.BooleanField(default=False, help_text='Under 12 when registered')),
                ('registered_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('head', models.ForeignKey(blank=True, help_text='Head of household who created the family plan', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='dependents', to='accounts.member')),
                ('user', models.OneToOneField(blank=True, help_text='Login account; empty for dependents under 12', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='member', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['name'],
                'indexes': [models.Index(fields=['role', 'membership_type'], name='member_role_plan_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('membership_type', 'FAMILIAR'), _negated=True) | models.Q(('family_group__isnull', False)), name='member_familiar_has_group'),
                    models.CheckConstraint(condition=models.Q(('membership_type', 'INDIVIDUAL'), _negated=True) | models.Q(('family_group__isnull', True), ('head__isnull', True)), name='member_individual_has_no_group'),
                ],
            },
        ),
        migrations.CreateModel(
            name='MemberRemoval',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('member_id_snapshot', models.BigIntegerField()),
                ('name', models.CharField(max_length=120)),
                ('dni', models.CharField(max_length=8)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('role', models.CharField(choices=[('SOCIO', 'Socio'), ('ENTRENADOR', 'Entrenador'), ('ADMIN', 'Administrador'), ('SUPER_ADMIN', 'Super administrador')], max_length=20)),
                ('reason', models.TextField(blank=True)),
                ('removed_at', models.DateTimeField(auto_now_add=True)),
                ('performed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='removals_performed', to='accounts.member')),
            ],
            options={
                'ordering': ['-removed_at'],
                'indexes': [models.Index(fields=['dni'], name='member_removal_dni_idx')],
            },
        ),
    ]
