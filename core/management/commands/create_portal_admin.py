from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from core.models import CustomUser


class Command(BaseCommand):
    help = 'Cria (ou atualiza) um administrador do portal'

    def add_arguments(self, parser):
        parser.add_argument('username', type=str, help='Username do administrador')
        parser.add_argument('password', type=str, help='Senha do administrador')
        parser.add_argument('--name', type=str, default='', help='Nome exibido (opcional)')
        parser.add_argument('--superuser', action='store_true', help='Também marca como superusuário')

    def handle(self, *args, **options):
        username = options['username'].strip()
        password = options['password']
        if not username or not password:
            raise CommandError('Username e senha são obrigatórios.')

        with transaction.atomic():
            user = CustomUser.objects.filter(username=username).first()
            if user is None:
                user = CustomUser(username=username)
            else:
                # Usuário existente é atualizado, não recriado
                self.stdout.write(f'Atualizando usuário existente: {user.username}')
            user.set_password(password)
            if options['name']:
                user.first_name = options['name']
            user.role = CustomUser.ROLE_ADMIN
            user.is_staff = True
            user.is_superuser = options['superuser']
            user.is_active = True
            user.save()

        self.stdout.write(self.style.SUCCESS('Administrador salvo com sucesso!'))
        self.stdout.write(f'   Username: {user.username}')
        self.stdout.write(f'   Role: {user.role}')
        self.stdout.write(f'   is_superuser: {user.is_superuser}')
