from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['email', 'name', 'role', 'is_active', 'is_superuser', 'created_at']
    list_filter = ['role', 'is_active', 'is_superuser']
    search_fields = ['email', 'name', 'username']
    ordering = ['name', 'email']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Profile', {'fields': ('name', 'role', 'phone', 'bio', 'avatar')}),
    )
    add_fieldsets = (
        (None, {
            'classes': ('wide',),
            'fields': ('email', 'username', 'name', 'role', 'password1', 'password2'),
        }),
    )
