from django.contrib import admin

from .models import Court, CourtReservation


@admin.register(Court)
class CourtAdmin(admin.ModelAdmin):
    list_display = ('number', 'court_type', 'location', 'opens_at', 'closes_at', 'price', 'practice')
    list_filter = ('court_type',)
    search_fields = ('location',)
    ordering = ('number',)


@admin.register(CourtReservation)
class CourtReservationAdmin(admin.ModelAdmin):
    list_display = ('court', 'date', 'start_time', 'member', 'paid', 'created_at')
    list_filter = ('paid', 'court', 'date')
    search_fields = ('member__name', 'member__dni')
    date_hierarchy = 'date'
    raw_id_fields = ('member',)
