"""
Serializers para API REST
"""
from django.utils import timezone
from rest_framework import serializers

from .models import ActivityLog, HandlerHistory, TeamMember, Ticket, TicketComment
from .overdue import overdue_status
from .storage import decode_data_url


class TeamMemberSerializer(serializers.ModelSerializer):
    """Serializer para TeamMember"""
    username = serializers.CharField(source='user.username', read_only=True, default=None)

    class Meta:
        model = TeamMember
        fields = ['id', 'name', 'username', 'role', 'team_type', 'avatar_url']
        read_only_fields = fields


class CommentSerializer(serializers.ModelSerializer):
    author_name = serializers.CharField(source='author.get_full_name', read_only=True)

    class Meta:
        model = TicketComment
        fields = ['id', 'author', 'author_name', 'content', 'created_at']
        read_only_fields = fields


class ActivityLogSerializer(serializers.ModelSerializer):
    recorded_by_name = serializers.SerializerMethodField()

    class Meta:
        model = ActivityLog
        fields = [
            'id', 'handler_name', 'team_type', 'action_taken', 'notes', 'new_status',
            'assigned_to_services', 'photo_url', 'face_photo_url', 'file_url', 'file_name',
            'recorded_by', 'recorded_by_name', 'client_token', 'created_at',
        ]
        read_only_fields = fields

    def get_recorded_by_name(self, obj):
        return obj.recorded_by.get_full_name() if obj.recorded_by else None


class HandlerHistorySerializer(serializers.ModelSerializer):
    is_open = serializers.BooleanField(read_only=True)

    class Meta:
        model = HandlerHistory
        fields = ['id', 'handler_name', 'started_at', 'ended_at', 'is_open']
        read_only_fields = fields


class TicketSerializer(serializers.ModelSerializer):
    """Ticket com o badge de atraso calculado no momento da requisição"""
    assigned_to = TeamMemberSerializer(read_only=True)
    created_by_name = serializers.CharField(source='created_by.get_full_name', read_only=True)
    overdue = serializers.SerializerMethodField()

    class Meta:
        model = Ticket
        fields = [
            'id', 'ticket_number', 'title', 'description', 'status', 'priority',
            'category', 'project_name', 'customer_contact', 'sales_name', 'sn_unit',
            'photo_url', 'assigned_to', 'created_by', 'created_by_name',
            'current_team', 'services_status', 'escalated_at',
            'overdue_hours', 'overdue_enabled', 'overdue',
            'created_at', 'updated_at', 'resolved_at', 'closed_at',
        ]
        read_only_fields = fields

    def get_overdue(self, obj):
        return overdue_status(obj, self.context.get('now') or timezone.now())


class TicketDetailSerializer(TicketSerializer):
    comments = CommentSerializer(many=True, read_only=True)
    activity_logs = ActivityLogSerializer(many=True, read_only=True)
    handler_history = HandlerHistorySerializer(many=True, read_only=True)

    class Meta(TicketSerializer.Meta):
        fields = TicketSerializer.Meta.fields + ['comments', 'activity_logs', 'handler_history']
        read_only_fields = fields


class TicketCreateSerializer(serializers.Serializer):
    """Entrada de criação; as regras de negócio ficam em services.create_ticket"""
    title = serializers.CharField(max_length=255)
    description = serializers.CharField()
    status = serializers.CharField(required=False, allow_blank=True)
    priority = serializers.CharField(required=False, allow_blank=True)
    category = serializers.CharField(max_length=100, required=False, allow_blank=True)
    project_name = serializers.CharField(max_length=255, required=False, allow_blank=True)
    customer_contact = serializers.CharField(max_length=100, required=False, allow_blank=True)
    sales_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    sn_unit = serializers.CharField(max_length=100, required=False, allow_blank=True)
    assigned_to = serializers.PrimaryKeyRelatedField(
        queryset=TeamMember.objects.all(), required=False, allow_null=True
    )
    overdue_hours = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    overdue_enabled = serializers.BooleanField(required=False, default=True)
    photo = serializers.FileField(required=False)


class CommentCreateSerializer(serializers.Serializer):
    content = serializers.CharField()


class ActivityCreateSerializer(serializers.Serializer):
    """
    Registro de atividade. A foto facial pode vir como arquivo (face_photo)
    ou como data URL do snapshot da câmera (face_photo_data).
    """
    handler_name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    action_taken = serializers.CharField(required=False, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    new_status = serializers.CharField(required=False, allow_blank=True)
    sn_unit = serializers.CharField(max_length=100, required=False, allow_blank=True)
    client_token = serializers.CharField(max_length=64, required=False, allow_blank=True)
    photo = serializers.FileField(required=False)
    report_file = serializers.FileField(required=False)
    assign_to_services = serializers.BooleanField(required=False, default=False)
    services_assignee = serializers.PrimaryKeyRelatedField(
        queryset=TeamMember.objects.all(), required=False, allow_null=True
    )
    face_photo = serializers.FileField(required=False)
    face_photo_data = serializers.CharField(required=False, allow_blank=True, trim_whitespace=True)

    def validate(self, attrs):
        # InvalidImageError segue para o exception handler do portal
        if not attrs.get('face_photo') and attrs.get('face_photo_data'):
            attrs['face_photo'] = decode_data_url(attrs['face_photo_data'], 'face.jpg')
        return attrs


class OverdueConfigSerializer(serializers.Serializer):
    # Campo ausente fica None (em formulário o BooleanField assumiria False)
    overdue_hours = serializers.CharField(required=False, allow_null=True)
    overdue_enabled = serializers.BooleanField(required=False, allow_null=True, default=None)
