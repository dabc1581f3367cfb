from django.contrib import admin
from .models import Notice

@admin.register(Notice)
class NoticeAdmin(admin.ModelAdmin):
    list_display = ('title', 'category', 'priority', 'author', 'is_published', 'scheduled_for', 'views', 'created_at')
    list_filter = ('category', 'priority', 'is_published', 'branch', 'year')
    search_fields = ('title', 'content', 'author__username')
    # publishing goes through the API so students get notified
    readonly_fields = ('is_published', 'views', 'created_at', 'updated_at')
    date_hierarchy = 'created_at'
