from django.contrib import admin
from .models import Notification

@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = ('title', 'message', 'recipient', 'type', 'created_at')
    list_filter = ('type',)
    search_fields = ('message', 'recipient__username')
    readonly_fields = ('recipient', 'type', 'title', 'message', 'data', 'created_at')

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
