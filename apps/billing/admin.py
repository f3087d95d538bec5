from django.contrib import admin
from django.utils.html import format_html

from .models import BillingSettings, MonthlyDue, Payment
from .services import compute_monthly_fee


@admin.register(BillingSettings)
class BillingSettingsAdmin(admin.ModelAdmin):
    list_display = ('base_fee', 'updated_at')

    def has_add_permission(self, request):
        return not BillingSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(MonthlyDue)
class MonthlyDueAdmin(admin.ModelAdmin):
    list_display = ('member', 'period_label', 'due_date', 'amount_display', 'paid_display')
    list_filter = ('year', 'month')
    search_fields = ('member__name', 'member__dni')
    raw_id_fields = ('member',)

    def amount_display(self, obj):
        if not obj.member.membership_type:
            return '-'
        return f"${compute_monthly_fee(obj.member)}"
    amount_display.short_description = 'Amount'

    def paid_display(self, obj):
        return obj.is_paid
    paid_display.boolean = True
    paid_display.short_description = 'Paid'


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    list_display = ('member', 'payment_type', 'amount_display', 'status_badge',
                    'card_last4', 'created_at', 'paid_at')
    list_filter = ('status', 'payment_type', 'created_at')
    search_fields = ('member__name', 'member__dni', 'token')
    readonly_fields = ('created_at', 'paid_at', 'token')
    raw_id_fields = ('member', 'due', 'enrollment', 'reservation')
    date_hierarchy = 'created_at'

    def amount_display(self, obj):
        return f"${obj.amount}"
    amount_display.short_description = 'Amount'

    def status_badge(self, obj):
        colors = {
            Payment.STATUS_PAID: '#10b981',
            Payment.STATUS_PENDING: '#f59e0b',
            Payment.STATUS_REJECTED: '#ef4444',
        }
        return format_html(
            '<span style="background-color: {}; color: white; padding: 3px 8px; '
            'border-radius: 3px;">{}</span>',
            colors.get(obj.status, '#6b7280'), obj.get_status_display()
        )
    status_badge.short_description = 'Status'
