"""
Erros do portal com código legível por máquina.

As views HTML convertem esses erros em mensagens (django.contrib.messages);
a API os converte em {"error": {"code", "message", "fields"}} através de
core.api.portal_exception_handler.
"""


class PortalError(Exception):
    code = 'error'
    status_code = 400
    default_message = 'Não foi possível concluir a operação.'

    def __init__(self, message=None, fields=None):
        self.message = message or self.default_message
        self.fields = list(fields or [])
        super().__init__(self.message)

    def as_dict(self):
        error = {'code': self.code, 'message': self.message}
        if self.fields:
            error['fields'] = self.fields
        return {'error': error}


class MissingFieldError(PortalError):
    code = 'missing_field'
    default_message = 'Preencha todos os campos obrigatórios.'

    def __init__(self, fields=None, message=None):
        fields = list(fields or [])
        if message is None and fields:
            message = f"Campos obrigatórios não preenchidos: {', '.join(fields)}"
        super().__init__(message, fields)


class FacePhotoRequiredError(MissingFieldError):
    code = 'face_photo_required'
    default_message = 'A foto de verificação facial é obrigatória.'

    def __init__(self, message=None):
        super().__init__(['face_photo'], message or self.default_message)


class InvalidStatusError(PortalError):
    code = 'invalid_status'
    default_message = 'Status inválido.'


class InvalidOverdueHoursError(PortalError):
    code = 'invalid_overdue_hours'
    default_message = 'O limite de atraso deve ser um número inteiro maior ou igual a 1.'


class PortalPermissionError(PortalError):
    code = 'forbidden'
    status_code = 403
    default_message = 'Você não tem permissão para executar esta ação.'


class StorageError(PortalError):
    code = 'storage_error'
    status_code = 502
    default_message = 'Falha ao enviar o arquivo. Tente novamente.'


class InvalidCredentialsError(PortalError):
    code = 'invalid_credentials'
    status_code = 401
    default_message = 'Credenciais inválidas.'


class InvalidPriorityError(PortalError):
    code = 'invalid_priority'
    default_message = 'Prioridade inválida.'


class InvalidImageError(PortalError):
    code = 'invalid_image'
    default_message = 'Imagem inválida ou corrompida.'


class FileTooLargeError(PortalError):
    code = 'file_too_large'
    status_code = 413
    default_message = 'Arquivo muito grande.'


class InvalidDocumentError(PortalError):
    code = 'invalid_file'
    default_message = 'O relatório deve ser um arquivo PDF.'


class InvalidAssigneeError(PortalError):
    code = 'invalid_assignee'
    default_message = 'O responsável escolhido não pertence ao Team Services.'
