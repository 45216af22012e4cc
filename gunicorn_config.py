# Configuração do Gunicorn para o Portal de Suporte
import multiprocessing
import os

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "portal_suporte.settings_production")

wsgi_app = "portal_suporte.wsgi:application"
chdir = os.getenv("PORTAL_APP_DIR", os.path.dirname(os.path.abspath(__file__)))

# Uploads de fotos chegam pelo formulário de atividade; workers sync bastam
workers = int(os.getenv("GUNICORN_WORKERS", multiprocessing.cpu_count() * 2 + 1))
worker_class = "sync"
timeout = int(os.getenv("GUNICORN_TIMEOUT", "60"))
keepalive = 5

bind = os.getenv("GUNICORN_BIND", "127.0.0.1:8000")
backlog = 2048
max_requests = 1000
max_requests_jitter = 50
preload_app = True

# Logs no stdout/stderr, coletados pelo systemd ou pelo container
accesslog = "-"
errorlog = "-"
loglevel = os.getenv("LOG_LEVEL", "info").lower()
access_log_format = '%(h)s %(l)s %(u)s %(t)s "%(r)s" %(s)s %(b)s "%(f)s" "%(a)s" %(D)s'


def when_ready(server):
    server.log.info("Portal de Suporte pronto para aceitar conexões")


def post_fork(server, worker):
    server.log.info(f"Worker {worker.pid} criado")


def worker_int(worker):
    worker.log.info("Worker recebeu sinal de interrupção")
