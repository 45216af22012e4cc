from django.contrib.auth.admin import UserAdmin
from django.contrib.admin import AdminSite
from .models import CustomUser


class PortalOnlyAdminSite(AdminSite):
    site_header = "Portal de Suporte - Admin"
    site_title = "Portal Admin"
    index_title = "Painel do Portal"

    def has_permission(self, request):
        user = request.user
        if user.is_superuser:
            return True
        # Somente usuários ativos, staff e com papel admin
        return user.is_active and user.is_staff and getattr(user, 'role', None) == CustomUser.ROLE_ADMIN


# Instância do AdminSite restrita aos administradores do portal
portal_admin_site = PortalOnlyAdminSite(name='portal_admin')


class CustomUserAdmin(UserAdmin):
    list_display = ['username', 'first_name', 'last_name', 'role', 'team_type', 'is_active']
    list_filter = ['role', 'team_type', 'is_active', 'is_staff', 'date_joined']
    search_fields = ['username', 'email', 'first_name', 'last_name']
    readonly_fields = ['created_at', 'updated_at']

    fieldsets = UserAdmin.fieldsets + (
        ('Portal', {
            'fields': ('role', 'team_type', 'allowed_menus')
        }),
        ('Datas Customizadas', {
            'fields': ('created_at', 'updated_at'),
            'classes': ('collapse',)
        }),
    )


portal_admin_site.register(CustomUser, CustomUserAdmin)
