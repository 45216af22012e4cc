from django.db import models
from django.contrib.auth.models import AbstractUser


class CustomUser(AbstractUser):
    """Usuário do portal com papel, equipe e menus liberados"""

    ROLE_ADMIN = 'admin'
    ROLE_TEAM = 'team'
    ROLE_GUEST = 'guest'

    USER_ROLES = [
        (ROLE_ADMIN, 'Administrador'),
        (ROLE_TEAM, 'Equipe'),
        (ROLE_GUEST, 'Convidado'),
    ]

    TEAM_PTS = 'pts'
    TEAM_SERVICES = 'services'
    TEAM_GUEST = 'guest'

    TEAM_TYPES = [
        (TEAM_PTS, 'Team PTS'),
        (TEAM_SERVICES, 'Team Services'),
        (TEAM_GUEST, 'Guest'),
    ]

    role = models.CharField(
        max_length=20,
        choices=USER_ROLES,
        default=ROLE_TEAM,
        verbose_name="Função"
    )
    team_type = models.CharField(
        max_length=20,
        choices=TEAM_TYPES,
        default=TEAM_PTS,
        verbose_name="Equipe"
    )
    allowed_menus = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Menus liberados",
        help_text="Chaves das seções do dashboard que o usuário pode ver"
    )
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Criado em")
    updated_at = models.DateTimeField(auto_now=True, verbose_name="Atualizado em")

    class Meta:
        verbose_name = "Usuário"
        verbose_name_plural = "Usuários"

    def save(self, *args, **kwargs):
        # Equipe derivada do papel, como no cadastro original
        if self.role == self.ROLE_GUEST:
            self.team_type = self.TEAM_GUEST
        elif self.role == self.ROLE_ADMIN:
            self.team_type = self.TEAM_PTS
            if not self.is_staff:
                self.is_staff = True
        elif self.team_type == self.TEAM_GUEST:
            self.team_type = self.TEAM_PTS
        super().save(*args, **kwargs)

    @property
    def is_portal_admin(self):
        """Administrador do portal (papel admin ou superusuário)"""
        return self.role == self.ROLE_ADMIN or self.is_superuser

    @property
    def is_guest(self):
        return self.role == self.ROLE_GUEST and not self.is_superuser

    def can_see_menu(self, key):
        """Admins veem tudo; demais apenas os menus liberados"""
        if self.is_portal_admin:
            return True
        return key in (self.allowed_menus or [])

    def get_full_name(self):
        """Retorna nome completo ou username"""
        full_name = super().get_full_name()
        return full_name or self.username

    def __str__(self):
        return self.get_full_name()
