"""
Rentas — API errors

Validation problems surface as DRF 400s from the serializers. Store
failures (database or blob storage) are turned into a 503 carrying the
action's message and the underlying error text.
"""
import logging

from django.db import DatabaseError
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

DEFAULT_STORE_ERROR = 'Error al procesar la solicitud'


class StorageLocationError(APIException):
    """A stored file URL that cannot be split into bucket and path."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'No se pudo determinar la ubicación del archivo'
    default_code = 'storage_location'


class StoredFileNotFound(NotFound):
    default_detail = 'Archivo no encontrado.'
    default_code = 'file_not_found'


class PaymentCycleError(APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'La propiedad no tiene un ciclo de pago activo.'
    default_code = 'payment_cycle'


def api_exception_handler(exc, context):
    response = exception_handler(exc, context)
    if response is not None:
        return response

    if isinstance(exc, (DatabaseError, OSError)):
        view = context.get('view')
        action = getattr(view, 'action', None)
        messages = getattr(view, 'error_messages', {}) or {}
        prefix = messages.get(action, DEFAULT_STORE_ERROR)
        logger.exception('%s (%s)', prefix, type(exc).__name__)
        return Response(
            {'detail': f'{prefix}: {exc}'},
            status=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    return None
