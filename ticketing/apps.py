from django.apps import AppConfig


class TicketingConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'ticketing'
    verbose_name = 'Tickets'

    def ready(self):
        # Criação automática do membro da equipe para usuários "team"
        import ticketing.signals  # noqa: F401
