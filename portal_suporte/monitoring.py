"""
Logs em arquivo e monitoramento de erros (Sentry) do Portal de Suporte
"""
import logging

# (logger, handler) ligados quando há diretório de logs
FILE_LOG_ROUTES = (
    ('core', 'file'),
    ('ticketing', 'file'),
    ('django', 'file'),
    ('security', 'security_file'),
    ('audit', 'audit_file'),
)


def attach_file_handlers(logging_config, logs_dir):
    """Adiciona os handlers rotativos em logs_dir ao dicionário LOGGING"""
    logging_config['handlers'].update({
        'file': {
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': logs_dir / 'portal.log',
            'maxBytes': 1024*1024*5,  # 5MB
            'backupCount': 5,
            'formatter': 'verbose',
        },
        'security_file': {
            'level': 'WARNING',
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': logs_dir / 'security.log',
            'maxBytes': 1024*1024*10,  # 10MB
            'backupCount': 10,
            'formatter': 'security',
        },
        'audit_file': {
            'level': 'INFO',
            'class': 'logging.handlers.RotatingFileHandler',
            'filename': logs_dir / 'audit.log',
            'maxBytes': 1024*1024*10,  # 10MB
            'backupCount': 10,
            'formatter': 'audit',
        },
    })
    for logger_name, handler in FILE_LOG_ROUTES:
        handlers = logging_config['loggers'][logger_name]['handlers']
        if handler not in handlers:
            handlers.append(handler)
    return logging_config


def init_sentry(dsn, environment='production', traces_sample_rate=0.1):
    """
    Inicializa o Sentry quando há DSN. Sem DSN não faz nada e devolve False.
    Requer o extra `monitoring` (sentry-sdk).
    """
    if not dsn:
        return False

    import sentry_sdk
    from sentry_sdk.integrations.django import DjangoIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    sentry_logging = LoggingIntegration(
        level=logging.INFO,        # breadcrumbs a partir de INFO
        event_level=logging.ERROR  # eventos a partir de ERROR
    )
    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        integrations=[DjangoIntegration(), sentry_logging],
        traces_sample_rate=traces_sample_rate,
        send_default_pii=False,
    )
    return True
