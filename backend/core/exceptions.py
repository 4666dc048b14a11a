"""
Domain errors and the REST framework exception handler that renders them
"""
import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class StorefrontError(Exception):
    """Base class for business rule failures raised from views and model helpers"""
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = 'Request could not be processed'

    def __init__(self, message=None, detail=None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class InsufficientStock(StorefrontError):
    default_message = 'Insufficient stock'


class DiscountInvalid(StorefrontError):
    default_message = 'Discount is not valid for this order'


class OrderStateError(StorefrontError):
    default_message = 'Order cannot be changed in its current state'


def exception_handler(exc, context):
    """Render StorefrontError as {'error', 'detail'}; defer everything else to DRF"""
    if isinstance(exc, StorefrontError):
        view = context.get('view')
        logger.info(f"{exc.__class__.__name__} in {type(view).__name__}: {exc.message}")
        body = {'error': exc.message}
        if exc.detail is not None:
            body['detail'] = exc.detail
        return Response(body, status=exc.status_code)
    return drf_exception_handler(exc, context)
