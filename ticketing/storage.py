"""
Armazenamento dos arquivos dos tickets: fotos (documentação e verificação
facial) e relatórios em PDF das atividades.

Os arquivos vão para o storage padrão do Django e são referenciados pela URL
pública devolvida por storage.url().
"""
import base64
import binascii
import logging
import os
import re
import uuid
from dataclasses import dataclass

from django.conf import settings
from django.core.files.base import ContentFile, File
from django.core.files.storage import default_storage

from core.exceptions import FileTooLargeError, InvalidDocumentError, InvalidImageError, StorageError

logger = logging.getLogger(__name__)

DATA_URL_RE = re.compile(r'^data:(?P<mime>image/[\w.+-]+);base64,(?P<data>.+)$', re.DOTALL)

# Assinaturas aceitas: (magic, deslocamento, extensão)
IMAGE_SIGNATURES = [
    (b'\xff\xd8\xff', 0, '.jpg'),
    (b'\x89PNG\r\n\x1a\n', 0, '.png'),
    (b'GIF87a', 0, '.gif'),
    (b'GIF89a', 0, '.gif'),
    (b'WEBP', 8, '.webp'),
]

PDF_SIGNATURE = b'%PDF-'

KIND_IMAGE = 'image'
KIND_PDF = 'pdf'


@dataclass(frozen=True)
class StoredBlob:
    name: str
    url: str


def detect_image_extension(header: bytes):
    """Extensão pela assinatura do arquivo, ou None se não for imagem aceita"""
    for magic, offset, extension in IMAGE_SIGNATURES:
        if header[offset:offset + len(magic)] == magic:
            if extension == '.webp' and not header.startswith(b'RIFF'):
                continue
            return extension
    return None


def decode_data_url(data_url, filename='snapshot'):
    """Converte o data URL do snapshot da câmera em arquivo"""
    match = DATA_URL_RE.match((data_url or '').strip())
    if not match:
        raise InvalidImageError('Snapshot da câmera em formato inválido.')
    try:
        content = base64.b64decode(match.group('data'), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError('Snapshot da câmera em formato inválido.') from e
    return ContentFile(content, name=filename)


class BlobStore:
    """Envio de arquivos com novas tentativas e remoção compensatória"""

    def __init__(self, storage=None, retries=None, max_bytes=None):
        self.storage = storage or default_storage
        self.retries = max(1, retries if retries is not None else getattr(settings, 'BLOB_UPLOAD_RETRIES', 3))
        self.max_bytes = max_bytes or getattr(settings, 'BLOB_MAX_UPLOAD_BYTES', 8 * 1024 * 1024)

    def _read_header(self, upload):
        if hasattr(upload, 'seek'):
            upload.seek(0)
        header = upload.read(16)
        upload.seek(0)
        return header

    def validate(self, upload, kind=KIND_IMAGE):
        size = getattr(upload, 'size', None)
        if size is not None and size > self.max_bytes:
            raise FileTooLargeError(
                f"Arquivo muito grande. Máximo permitido: {self.max_bytes // (1024 * 1024)}MB"
            )
        header = self._read_header(upload)
        if kind == KIND_PDF:
            if not size or not header.startswith(PDF_SIGNATURE):
                raise InvalidDocumentError()
            return '.pdf'
        if not size:
            raise InvalidImageError('Arquivo de imagem vazio.')
        extension = detect_image_extension(header)
        if extension is None:
            raise InvalidImageError('O arquivo enviado não é uma imagem JPEG, PNG, GIF ou WEBP.')
        return extension

    def upload(self, upload, folder, owner_id=None, kind=KIND_IMAGE) -> StoredBlob:
        if not isinstance(upload, File):
            upload = File(upload)
        extension = self.validate(upload, kind)
        parts = [folder] + ([str(owner_id)] if owner_id is not None else [])
        target = os.path.join(*parts, f"{uuid.uuid4().hex}{extension}")

        last_error = None
        for attempt in range(1, self.retries + 1):
            try:
                upload.seek(0)
                name = self.storage.save(target, upload)
                url = self.storage.url(name)
                logger.debug(f"Arquivo enviado: {name} (tentativa {attempt})")
                return StoredBlob(name=name, url=url)
            except OSError as e:
                last_error = e
                logger.warning(f"Falha ao enviar {target} (tentativa {attempt}/{self.retries}): {e}")

        logger.error(f"Envio de {target} falhou após {self.retries} tentativas: {last_error}")
        raise StorageError() from last_error

    def delete(self, blob):
        """Remove um arquivo já enviado (usado quando a transação falha)"""
        name = blob.name if isinstance(blob, StoredBlob) else blob
        try:
            self.storage.delete(name)
            logger.info(f"Arquivo removido após falha: {name}")
        except OSError as e:
            logger.error(f"Não foi possível remover {name}: {e}")
