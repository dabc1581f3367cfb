from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from django.http import HttpResponse
import csv
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    fieldsets = BaseUserAdmin.fieldsets + (('Notice Board', {'fields': ('role', 'branch', 'year')}),)
    add_fieldsets = BaseUserAdmin.add_fieldsets + (('Notice Board', {'fields': ('role', 'branch', 'year')}),)
    list_display = BaseUserAdmin.list_display + ('role', 'branch', 'year')
    list_filter = BaseUserAdmin.list_filter + ('role', 'branch', 'year')

    actions = ['export_users_to_csv']

    def export_users_to_csv(self, request, queryset):
        response = HttpResponse(content_type='text/csv')
        response['Content-Disposition'] = 'attachment; filename="users.csv"'

        writer = csv.writer(response)
        writer.writerow(['username', 'first_name', 'last_name', 'email', 'role', 'branch', 'year'])

        for user in queryset:
            writer.writerow([user.username, user.first_name, user.last_name, user.email,
                             user.role, user.branch, user.year or ''])

        return response
    export_users_to_csv.short_description = "Export selected users to CSV"
