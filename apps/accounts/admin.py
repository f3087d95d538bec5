from django.contrib import admin, messages
from django.utils.html import format_html

from .exceptions import MembershipError
from .models import EmailLog, Member, MemberRemoval
from .services import convert_family_to_individual, remove_member


class DependentInline(admin.TabularInline):
    model = Member
    fk_name = 'head'
    extra = 0
    can_delete = False
    fields = ('dni', 'name', 'birth_date', 'is_minor')
    readonly_fields = fields
    verbose_name_plural = 'Family members'

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Member)
class MemberAdmin(admin.ModelAdmin):
    inlines = (DependentInline,)
    list_display = ('name', 'dni', 'email', 'role', 'plan_badge', 'family_group',
                    'age_display', 'registered_at')
    list_filter = ('role', 'membership_type', 'is_minor', 'registered_at')
    search_fields = ('name', 'dni', 'email', 'family_group')
    ordering = ('name',)
    readonly_fields = ('membership_type', 'family_group', 'head', 'is_minor',
                       'registered_at', 'updated_at')
    actions = ['move_to_individual_plan']

    fieldsets = (
        ('Identity', {
            'fields': ('user', 'dni', 'name', 'birth_date', 'role')
        }),
        ('Contact', {
            'fields': ('email', 'phone', 'address')
        }),
        ('Plan', {
            'fields': ('membership_type', 'family_group', 'head', 'is_minor'),
            'description': 'Plan changes go through the family plan actions.'
        }),
        ('Timestamps', {
            'fields': ('registered_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )

    def plan_badge(self, obj):
        if obj.membership_type == Member.FAMILIAR:
            label = 'HEAD' if obj.is_family_head else 'FAMILY'
            return format_html(
                '<span style="background-color: #2563eb; color: white; padding: 3px 8px; '
                'border-radius: 3px;">{}</span>', label
            )
        if obj.membership_type == Member.INDIVIDUAL:
            return 'Individual'
        return '-'
    plan_badge.short_description = 'Plan'

    def age_display(self, obj):
        return obj.age
    age_display.short_description = 'Age'

    def _acting_member(self, request):
        return getattr(request.user, 'member', None)

    def move_to_individual_plan(self, request, queryset):
        count = 0
        for member in queryset.filter(membership_type=Member.FAMILIAR):
            try:
                result = convert_family_to_individual(
                    member, performed_by=self._acting_member(request)
                )
            except MembershipError as e:
                self.message_user(request, f'{member}: {e.message}', messages.ERROR)
                continue
            count += 1 + len(result.cascaded)
        self.message_user(request, f'{count} members moved to the individual plan.')
    move_to_individual_plan.short_description = 'Move to individual plan'

    def delete_model(self, request, obj):
        remove_member(obj, performed_by=self._acting_member(request), reason='Removed from the admin site')

    def delete_queryset(self, request, queryset):
        for member in queryset:
            if Member.objects.filter(pk=member.pk).exists():
                self.delete_model(request, member)


@admin.register(MemberRemoval)
class MemberRemovalAdmin(admin.ModelAdmin):
    list_display = ('name', 'dni', 'email', 'role', 'performed_by', 'removed_at')
    list_filter = ('role', 'removed_at')
    search_fields = ('name', 'dni', 'email', 'reason')
    readonly_fields = ('member_id_snapshot', 'name', 'dni', 'email', 'role',
                       'performed_by', 'reason', 'removed_at')
    date_hierarchy = 'removed_at'

    def has_add_permission(self, request):
        return False


@admin.register(EmailLog)
class EmailLogAdmin(admin.ModelAdmin):
    list_display = ('subject', 'recipient', 'email_type', 'status', 'created_at')
    list_filter = ('email_type', 'status', 'created_at')
    search_fields = ('recipient', 'subject', 'error')
    readonly_fields = ('recipient', 'subject', 'email_type', 'status', 'error', 'created_at')
    date_hierarchy = 'created_at'

    def has_add_permission(self, request):
        return False
