"""
Celery configuration for Club Manager.
"""
import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings.development')

app = Celery('club_manager')

# Load config from Django settings, using CELERY_ prefix
app.config_from_object('django.conf:settings', namespace='CELERY')

# Auto-discover tasks in all installed apps
app.autodiscover_tasks()

app.conf.beat_schedule = {
    'generate-monthly-dues': {
        'task': 'apps.billing.tasks.generate_current_month_dues',
        'schedule': crontab(minute=0, hour=3, day_of_month=1),
    },
}
