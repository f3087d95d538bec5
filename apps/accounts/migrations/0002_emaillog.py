# Generated migration for the EmailLog model

from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('accounts', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='EmailLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('recipient', models.EmailField(max_length=254)),
                ('subject', models.CharField(max_length=200)),
                ('email_type', models.CharField(choices=[('MEMBER_REMOVED', 'Member removed'), ('DEPENDENT_REMOVED', 'Dependent removed'), ('PLAN_CHANGED', 'Plan changed'), ('PAYMENT_RECEIPT', 'Payment receipt')], max_length=30)),
                ('status', models.CharField(choices=[('SENT', 'Sent'), ('FAILED', 'Failed')], max_length=10)),
                ('error', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['email_type', 'status'], name='email_log_type_status_idx')],
            },
        ),
    ]
