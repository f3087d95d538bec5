from django.contrib import admin

from .models import Attendance, Enrollment, Practice, PracticeSchedule


class PracticeScheduleInline(admin.TabularInline):
    model = PracticeSchedule
    extra = 0


@admin.register(Practice)
class PracticeAdmin(admin.ModelAdmin):
    inlines = (PracticeScheduleInline,)
    list_display = ('name', 'capacity', 'enrolled_display', 'price', 'created_at')
    search_fields = ('name', 'description')
    filter_horizontal = ('coaches',)

    def enrolled_display(self, obj):
        return f"{obj.active_enrollment_count()} / {obj.capacity}"
    enrolled_display.short_description = 'Enrolled'


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ('member', 'practice', 'active', 'enrolled_at')
    list_filter = ('active', 'practice')
    search_fields = ('member__name', 'member__dni', 'practice__name')
    raw_id_fields = ('member',)


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ('enrollment', 'date', 'present', 'recorded_by')
    list_filter = ('present', 'date', 'enrollment__practice')
    date_hierarchy = 'date'
    raw_id_fields = ('enrollment', 'recorded_by')
