from django.contrib import admin
from django.utils.html import format_html

from core.admin import portal_admin_site

from .models import (
    ActivityLog, GuestMapping, HandlerHistory, OverdueSettings, TeamMember,
    Ticket, TicketComment,
)
from .overdue import overdue_status


class TicketCommentInline(admin.TabularInline):
    """Inline para exibir comentários do ticket"""
    model = TicketComment
    extra = 0
    readonly_fields = ['author', 'content', 'created_at']
    fields = ['content', 'author', 'created_at']
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class ActivityLogInline(admin.TabularInline):
    """Registros de atividade são imutáveis"""
    model = ActivityLog
    extra = 0
    fields = [
        'created_at', 'handler_name', 'team_type', 'new_status', 'assigned_to_services',
        'notes', 'face_photo_url', 'file_url', 'recorded_by',
    ]
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class HandlerHistoryInline(admin.TabularInline):
    model = HandlerHistory
    extra = 0
    fields = ['handler_name', 'started_at', 'ended_at']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


class TicketAdmin(admin.ModelAdmin):
    list_display = [
        'ticket_number',
        'title_short',
        'project_name',
        'status_badge',
        'priority_badge',
        'assigned_to',
        'overdue_badge',
        'created_at',
    ]
    list_filter = ['status', 'current_team', 'services_status', 'priority', 'overdue_enabled', 'created_at']
    search_fields = ['ticket_number', 'title', 'description', 'project_name', 'created_by__username']
    # Status e equipe só mudam por registro de atividade
    readonly_fields = [
        'ticket_number',
        'status',
        'current_team',
        'services_status',
        'escalated_at',
        'created_by',
        'created_at',
        'updated_at',
        'resolved_at',
        'closed_at',
    ]
    date_hierarchy = 'created_at'
    list_per_page = 50

    fieldsets = (
        ('Informações Básicas', {
            'fields': ('ticket_number', 'title', 'description', 'photo_url')
        }),
        ('Status e Prioridade', {
            'fields': ('status', 'current_team', 'services_status', 'escalated_at', 'priority', 'category')
        }),
        ('Projeto', {
            'fields': ('project_name', 'customer_contact', 'sales_name', 'sn_unit')
        }),
        ('Associações', {
            'fields': ('created_by', 'assigned_to')
        }),
        ('Atraso', {
            'fields': ('overdue_hours', 'overdue_enabled')
        }),
        ('Datas', {
            'fields': ('created_at', 'updated_at', 'resolved_at', 'closed_at'),
            'classes': ('collapse',)
        }),
    )

    inlines = [HandlerHistoryInline, ActivityLogInline, TicketCommentInline]

    def title_short(self, obj):
        """Exibe título truncado"""
        return obj.title[:50] + '...' if len(obj.title) > 50 else obj.title
    title_short.short_description = 'Título'

    def status_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 5px 10px; '
            'border-radius: 3px; font-weight: bold;">{}</span>',
            obj.get_status_color(),
            obj.get_status_display()
        )
    status_badge.short_description = 'Status'
    status_badge.admin_order_field = 'status'

    def priority_badge(self, obj):
        return format_html(
            '<span style="background-color: {}; color: white; padding: 5px 10px; '
            'border-radius: 3px; font-weight: bold;">{}</span>',
            obj.get_priority_color(),
            obj.get_priority_display()
        )
    priority_badge.short_description = 'Prioridade'
    priority_badge.admin_order_field = 'priority'

    def overdue_badge(self, obj):
        badge = overdue_status(obj)
        if badge['overdue']:
            return format_html('<strong style="color: #dc3545;">{} ({})</strong>', badge['label'], badge['elapsed'])
        return badge['elapsed']
    overdue_badge.short_description = 'Tempo decorrido'


class TeamMemberAdmin(admin.ModelAdmin):
    list_display = ['name', 'user', 'role', 'team_type', 'created_at']
    list_filter = ['team_type']
    search_fields = ['name', 'user__username']
    readonly_fields = ['avatar_url', 'created_at']


class GuestMappingAdmin(admin.ModelAdmin):
    list_display = ['guest', 'project_name']
    search_fields = ['guest__username', 'project_name']


class OverdueSettingsAdmin(admin.ModelAdmin):
    list_display = ['default_overdue_hours', 'updated_by', 'updated_at']
    readonly_fields = ['updated_by', 'updated_at']

    def has_add_permission(self, request):
        return not OverdueSettings.objects.exists()

    def has_delete_permission(self, request, obj=None):
        return False


portal_admin_site.register(Ticket, TicketAdmin)
portal_admin_site.register(TeamMember, TeamMemberAdmin)
portal_admin_site.register(GuestMapping, GuestMappingAdmin)
portal_admin_site.register(OverdueSettings, OverdueSettingsAdmin)
