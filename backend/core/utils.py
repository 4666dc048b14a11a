"""Utility functions for audit logging and query parameters"""
import logging
from datetime import datetime, timedelta

from django.utils import timezone

from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None):
    """
    Create an audit log entry

    Args:
        request: request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, status_change, ...)
        model_name: Name of the model being acted upon
        object_id: ID of the object
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user)
        object_name: Human-readable name of the object (product title, order id)
    """
    if not action or not model_name or object_id in (None, ''):
        logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
        return None

    try:
        audit_user = user
        if audit_user is None and request is not None:
            audit_user = getattr(request, 'user', None)

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            changes=changes or {},
            ip_address=get_client_ip(request) if request else None,
        )
    except Exception as e:
        # Audit failures never break the main operation
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def parse_date_range(request, default_days=None):
    """
    Read date_from/date_to (YYYY-MM-DD) from the query string.

    With ``default_days`` missing bounds default to the last N days; without it
    they stay None. Raises ValueError on a malformed date.
    """
    date_from = request.query_params.get('date_from', None)
    date_to = request.query_params.get('date_to', None)

    if date_from:
        date_from = datetime.strptime(date_from, '%Y-%m-%d').date()
    elif default_days:
        date_from = (timezone.now() - timedelta(days=default_days)).date()
    else:
        date_from = None

    if date_to:
        date_to = datetime.strptime(date_to, '%Y-%m-%d').date()
    elif default_days:
        date_to = timezone.now().date()
    else:
        date_to = None

    return date_from, date_to


def parse_int_param(request, name):
    """Integer query parameter, None when absent; raises ValueError when malformed"""
    value = request.query_params.get(name)
    if value in (None, ''):
        return None
    return int(value)
