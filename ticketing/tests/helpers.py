import base64
import shutil
import tempfile

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings

from ticketing.storage import StoredBlob

User = get_user_model()

JPEG_BYTES = b'\xff\xd8\xff\xe0' + b'\x00' * 128
PNG_BYTES = b'\x89PNG\r\n\x1a\n' + b'\x00' * 128
PDF_BYTES = b'%PDF-1.4\n' + b'%\xe2\xe3\xcf\xd3\n' + b'0' * 64

TICKETING_MENU = ['ticket-troubleshooting']


def jpeg_upload(name='face.jpg'):
    return SimpleUploadedFile(name, JPEG_BYTES, content_type='image/jpeg')


def pdf_upload(name='laporan.pdf'):
    return SimpleUploadedFile(name, PDF_BYTES, content_type='application/pdf')


def jpeg_data_url():
    return 'data:image/jpeg;base64,' + base64.b64encode(JPEG_BYTES).decode('ascii')


def make_user(username, role=None, first_name='', **extra):
    extra.setdefault('allowed_menus', TICKETING_MENU)
    return User.objects.create_user(
        username=username,
        password='testpass123',
        first_name=first_name,
        role=role or User.ROLE_TEAM,
        **extra
    )


class RecordingStore:
    """Store em memória que registra envios e remoções"""

    def __init__(self):
        self.uploaded = []
        self.deleted = []

    def upload(self, upload, folder, owner_id=None, kind='image'):
        extension = 'pdf' if kind == 'pdf' else 'jpg'
        name = f"{folder}/{owner_id}/{len(self.uploaded)}.{extension}"
        blob = StoredBlob(name=name, url=f"/media/{name}")
        self.uploaded.append(blob)
        return blob

    def delete(self, blob):
        self.deleted.append(blob)


class BrokenStorage:
    """Storage Django que sempre falha ao gravar"""

    def __init__(self):
        self.attempts = 0

    def save(self, name, content):
        self.attempts += 1
        raise OSError("disco indisponível")

    def url(self, name):
        return f"/media/{name}"

    def delete(self, name):
        pass


class MediaTestCase(TestCase):
    """Grava as fotos num MEDIA_ROOT temporário"""

    @classmethod
    def setUpClass(cls):
        cls._media_root = tempfile.mkdtemp(prefix='portal-media-')
        cls._media_override = override_settings(MEDIA_ROOT=cls._media_root)
        cls._media_override.enable()
        super().setUpClass()

    @classmethod
    def tearDownClass(cls):
        super().tearDownClass()
        cls._media_override.disable()
        shutil.rmtree(cls._media_root, ignore_errors=True)

    def setUp(self):
        cache.clear()
