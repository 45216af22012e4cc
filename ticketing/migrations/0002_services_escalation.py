from django.db import migrations, models


STATUS_CHOICES = [('open', 'Aberto'), ('in_progress', 'Em Andamento'), ('resolved', 'Resolvido'), ('closed', 'Fechado')]
TEAM_TYPES = [('pts', 'Team PTS'), ('services', 'Team Services')]


class Migration(migrations.Migration):

    dependencies = [
        ('ticketing', '0001_initial'),
    ]

    operations = [
        migrations.AddField(
            model_name='ticket',
            name='current_team',
            field=models.CharField(choices=TEAM_TYPES, default='pts', max_length=20, verbose_name='Equipe atual'),
        ),
        migrations.AddField(
            model_name='ticket',
            name='services_status',
            field=models.CharField(blank=True, choices=STATUS_CHOICES, default='', max_length=20, verbose_name='Status Team Services'),
        ),
        migrations.AddField(
            model_name='ticket',
            name='escalated_at',
            field=models.DateTimeField(blank=True, null=True, verbose_name='Encaminhado em'),
        ),
        migrations.AddField(
            model_name='activitylog',
            name='assigned_to_services',
            field=models.BooleanField(default=False, verbose_name='Encaminhado ao Team Services'),
        ),
        migrations.AddField(
            model_name='activitylog',
            name='file_url',
            field=models.CharField(blank=True, max_length=500, verbose_name='Relatório (PDF)'),
        ),
        migrations.AddField(
            model_name='activitylog',
            name='file_name',
            field=models.CharField(blank=True, max_length=255, verbose_name='Nome do relatório'),
        ),
    ]
