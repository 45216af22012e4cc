"""
Logs de auditoria do Portal de Suporte.

Cada evento vira uma linha JSON no logger 'audit': ações de usuários
(login, contas, tickets) em INFO e eventos de segurança em WARNING.
"""
import json
import logging

from django.utils import timezone

audit_logger = logging.getLogger('audit')


def get_client_ip(request):
    """Obter IP real do cliente"""
    if request is None:
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        return x_forwarded_for.split(',')[0].strip()
    return request.META.get('REMOTE_ADDR')


def _actor(user):
    if user is None or not getattr(user, 'is_authenticated', False):
        return {'user_id': None, 'username': 'anonymous', 'role': None}
    return {'user_id': user.id, 'username': user.username, 'role': getattr(user, 'role', None)}


class AuditLogger:
    """Serializa os eventos de auditoria"""

    @staticmethod
    def _write(level, payload):
        payload['timestamp'] = timezone.now().isoformat()
        audit_logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))

    @staticmethod
    def log_user_action(user, action, details=None, ip_address=None):
        """
        Args:
            user: Usuário que executou a ação
            action: login_success, ticket_created, activity_recorded, ...
            details: Detalhes adicionais da ação
            ip_address: IP do usuário
        """
        payload = _actor(user)
        payload.update({'action': action, 'ip_address': ip_address, 'details': details or {}})
        AuditLogger._write(logging.INFO, payload)

    @staticmethod
    def log_security_event(event_type, details=None, ip_address=None):
        """Falhas de login, acessos negados e limites de requisição"""
        AuditLogger._write(logging.WARNING, {
            'event_type': event_type,
            'ip_address': ip_address,
            'details': details or {},
        })


def log_login(user, ip_address=None):
    AuditLogger.log_user_action(user, 'login_success', {'team_type': user.team_type}, ip_address)


def log_logout(user, ip_address=None):
    AuditLogger.log_user_action(user, 'logout', None, ip_address)


def log_failed_login(username, ip_address=None):
    AuditLogger.log_security_event('failed_login', {'username': username}, ip_address)


def log_user_creation(creator, new_user):
    AuditLogger.log_user_action(creator, 'user_created', {
        'new_user_id': new_user.id,
        'new_username': new_user.username,
        'new_user_role': new_user.role,
        'allowed_menus': new_user.allowed_menus,
    })


def log_user_edit(editor, edited_user, changes):
    AuditLogger.log_user_action(editor, 'user_edited', {
        'edited_user_id': edited_user.id,
        'edited_username': edited_user.username,
        'changes': changes,
    })


def log_ticket_event(user, ticket, action, **details):
    """Ação sobre um ticket, identificada pelo número do ticket"""
    details.update({'ticket_id': ticket.id, 'ticket_number': ticket.ticket_number})
    AuditLogger.log_user_action(user, action, details)


def log_user_action(user, action, details=None, ip_address=None):
    AuditLogger.log_user_action(user, action, details, ip_address)


def log_security_event(event_type, details=None, ip_address=None):
    AuditLogger.log_security_event(event_type, details, ip_address)
