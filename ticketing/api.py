"""
API REST do módulo de tickets
"""
from django.conf import settings
from django.utils import timezone
from django.utils.decorators import method_decorator
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import BasePermission, IsAuthenticated
from rest_framework.response import Response
import logging

from core.exceptions import PortalPermissionError
from core.rate_limiting import upload_rate_limit

from . import services
from .models import ActivityLog, TeamMember
from .serializers import (
    ActivityCreateSerializer, ActivityLogSerializer, CommentCreateSerializer,
    CommentSerializer, OverdueConfigSerializer, TeamMemberSerializer,
    TicketCreateSerializer, TicketDetailSerializer, TicketSerializer,
)
from .stats import TicketStats

logger = logging.getLogger(__name__)


class HasTicketingAccess(BasePermission):
    """Seção de tickets liberada no dashboard do usuário"""
    message = 'Você não tem acesso a este módulo.'

    def has_permission(self, request, view):
        menu_key = getattr(settings, 'TICKETING_MENU_KEY', 'ticket-troubleshooting')
        return bool(request.user and request.user.is_authenticated and request.user.can_see_menu(menu_key))


def _forbid_guests(user):
    if getattr(user, 'is_guest', False):
        raise PortalPermissionError('Convidados têm acesso somente leitura.')


class TicketViewSet(mixins.ListModelMixin,
                    mixins.RetrieveModelMixin,
                    mixins.CreateModelMixin,
                    viewsets.GenericViewSet):
    """API para consulta e registro de tickets"""
    serializer_class = TicketSerializer
    permission_classes = [IsAuthenticated, HasTicketingAccess]

    def get_queryset(self):
        """Convidados só enxergam os projetos mapeados"""
        return services.visible_tickets(self.request.user)

    def get_serializer_context(self):
        context = super().get_serializer_context()
        context['now'] = timezone.now()
        return context

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return TicketDetailSerializer
        return TicketSerializer

    def list(self, request, *args, **kwargs):
        params = request.query_params
        tickets = services.filter_tickets(
            self.get_queryset(),
            status=params.get('status', ''),
            priority=params.get('priority', ''),
            search=params.get('q', ''),
            overdue=params.get('overdue') in ('1', 'true', 'on'),
            now=timezone.now(),
        )
        page = self.paginate_queryset(tickets)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        serializer = self.get_serializer(tickets, many=True)
        return Response(serializer.data)

    def create(self, request, *args, **kwargs):
        _forbid_guests(request.user)
        serializer = TicketCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        ticket = services.create_ticket(request.user, data, photo=data.get('photo'))
        output = TicketDetailSerializer(ticket, context=self.get_serializer_context())
        return Response(output.data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def comments(self, request, pk=None):
        """Adicionar comentário"""
        ticket = self.get_object()
        _forbid_guests(request.user)
        serializer = CommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = services.add_comment(ticket, request.user, serializer.validated_data['content'])
        return Response(CommentSerializer(comment).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    @method_decorator(upload_rate_limit)
    def activities(self, request, pk=None):
        """
        Registrar atividade. Reenvio com o mesmo client_token devolve o
        registro original com 200.
        """
        ticket = self.get_object()
        _forbid_guests(request.user)
        serializer = ActivityCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        token = data.get('client_token', '').strip()
        repeated = bool(token) and ActivityLog.objects.filter(ticket=ticket, client_token=token).exists()

        log = services.record_activity(
            ticket,
            request.user,
            data,
            photo=data.get('photo'),
            face_photo=data.get('face_photo'),
            report_file=data.get('report_file'),
        )
        ticket.refresh_from_db()
        return Response(
            {
                'activity': ActivityLogSerializer(log).data,
                'ticket': TicketDetailSerializer(ticket, context=self.get_serializer_context()).data,
            },
            status=status.HTTP_200_OK if repeated else status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=['patch'])
    def overdue(self, request, pk=None):
        """Alterar limite e ativação do atraso (administradores)"""
        ticket = self.get_object()
        serializer = OverdueConfigSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        ticket = services.update_overdue_config(
            request.user,
            ticket,
            overdue_hours=serializer.validated_data.get('overdue_hours'),
            overdue_enabled=serializer.validated_data.get('overdue_enabled'),
        )
        return Response(TicketSerializer(ticket, context=self.get_serializer_context()).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        """Cards e gráficos do dashboard de tickets"""
        return Response(TicketStats.summary(self.get_queryset(), timezone.now()))

    @action(detail=False, methods=['get'])
    def notifications(self, request):
        """Tickets pendentes ou atrasados do usuário"""
        items = services.notifications_for(request.user, timezone.now())
        return Response([
            {
                'ticket_id': item['ticket'].id,
                'ticket_number': item['ticket'].ticket_number,
                'title': item['ticket'].title,
                'kind': item['kind'],
                'status': item['status'],
                'overdue': item['overdue'],
                'message': item['message'],
            }
            for item in items
        ])


class TeamMemberViewSet(viewsets.ReadOnlyModelViewSet):
    """Membros da equipe para atribuição de tickets"""
    queryset = TeamMember.objects.select_related('user').order_by('name')
    serializer_class = TeamMemberSerializer
    permission_classes = [IsAuthenticated, HasTicketingAccess]
