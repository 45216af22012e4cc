"""
Signals do módulo de tickets
"""
from django.conf import settings
from django.db.models.signals import post_save
from django.dispatch import receiver
import logging

from .models import TeamMember

logger = logging.getLogger(__name__)


@receiver(post_save, sender=settings.AUTH_USER_MODEL)
def create_team_member_for_team_user(sender, instance, created, **kwargs):
    """Usuário da equipe recém-criado ganha o seu registro de membro da equipe"""
    if not created or instance.role != instance.ROLE_TEAM or instance.is_superuser:
        return
    if TeamMember.objects.filter(user=instance).exists():
        return
    team_type = TeamMember.TEAM_SERVICES if instance.team_type == TeamMember.TEAM_SERVICES else TeamMember.TEAM_PTS
    member = TeamMember.objects.create(
        name=instance.get_full_name(),
        user=instance,
        team_type=team_type,
        role='Support Engineer',
    )
    logger.info(f"Membro da equipe criado para {instance.username}: {member.name}")
