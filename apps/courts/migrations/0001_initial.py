# Generated migration for courts and reservations

import django.core.validators
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        ('practices', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Court',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('number', models.PositiveIntegerField(unique=True, validators=[django.core.validators.MinValueValidator(1)])),
                ('court_type', models.CharField(choices=[('FUTBOL_5', 'Fútbol 5'), ('FUTBOL', 'Fútbol'), ('BASQUET', 'Básquet')], max_length=20)),
                ('location', models.CharField(blank=True, max_length=100)),
                ('opens_at', models.TimeField(help_text='Start of the first bookable slot')),
                ('closes_at', models.TimeField(help_text='End of the bookable day')),
                ('price', models.PositiveIntegerField(help_text='Price per one-hour slot', validators=[django.core.validators.MinValueValidator(1)])),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('practice', models.ForeignKey(blank=True, help_text='Practice that usually trains on this court', null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='courts', to='practices.practice')),
            ],
            options={
                'ordering': ['number'],
                'constraints': [models.CheckConstraint(condition=models.Q(('opens_at__lt', models.F('closes_at'))), name='court_opens_before_closing')],
            },
        ),
        migrations.CreateModel(
            name='CourtReservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField()),
                ('start_time', models.TimeField()),
                ('paid', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('court', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='reservations', to='courts.court')),
                ('member', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='court_reservations', to='accounts.member')),
            ],
            options={
                'ordering': ['date', 'start_time'],
                'indexes': [models.Index(fields=['member', 'date'], name='reservation_member_date_idx')],
                'constraints': [models.UniqueConstraint(fields=('court', 'date', 'start_time'), name='reservation_unique_slot')],
            },
        ),
    ]
