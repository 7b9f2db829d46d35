"""Helpers shared by the JSON views of the drive apps.

Views receive the caller identity from Django authentication and turn
domain errors into HTTP responses in one place.
"""

import functools
import json
import logging
from collections.abc import Callable, Mapping
from http import HTTPStatus
from typing import Any, Final

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.views.decorators.http import require_http_methods

from blobdrive.apps.files.exceptions import (
    ConfigurationError,
    DriveError,
    ForbiddenError,
    NotFoundError,
    QuotaExceededError,
    ShareLinkExpiredError,
    UnauthorizedError,
    UnavailableError,
)
from blobdrive.apps.files.infrastructure.storage import TenantStorage
from blobdrive.apps.files.infrastructure.tenants import get_tenant_storage

logger = logging.getLogger(__name__)

_ERROR_STATUSES: Final = (
    (UnauthorizedError, HTTPStatus.UNAUTHORIZED),
    (ShareLinkExpiredError, HTTPStatus.FORBIDDEN),
    (ForbiddenError, HTTPStatus.FORBIDDEN),
    (NotFoundError, HTTPStatus.NOT_FOUND),
    (QuotaExceededError, HTTPStatus.REQUEST_ENTITY_TOO_LARGE),
    (ConfigurationError, HTTPStatus.INTERNAL_SERVER_ERROR),
    (UnavailableError, HTTPStatus.SERVICE_UNAVAILABLE),
)

IdentityView = Callable[..., HttpResponse]


def identity_of(request: HttpRequest) -> str:
    """Stable identity of the authenticated caller, '' when anonymous.

    The email address is preferred; accounts without one fall back to
    the username.
    """
    user = request.user
    if not user.is_authenticated:
        return ''
    return getattr(user, 'email', '') or user.get_username()


def json_body(request: HttpRequest) -> dict[str, Any]:
    """Parse a JSON object from the request body.

    Raises:
        ValueError: If the body is not a JSON object.
    """
    if not request.body:
        return {}
    payload = json.loads(request.body)
    if not isinstance(payload, dict):
        raise ValueError('Request body must be a JSON object')
    return payload


def required(payload: Mapping[str, Any], field: str) -> Any:
    """Get a mandatory field from a parsed body or query.

    Raises:
        ValueError: If the field is missing or blank.
    """
    field_value = payload.get(field)
    if field_value is None or field_value == '':
        raise ValueError(f'{field} is required')
    return field_value


def error_response(error: Exception) -> JsonResponse:
    """Map an exception raised by the core to a JSON error response."""
    if isinstance(error, ValueError):
        return JsonResponse(
            {'error': str(error)},
            status=HTTPStatus.BAD_REQUEST,
        )

    status = HTTPStatus.INTERNAL_SERVER_ERROR
    for error_class, error_status in _ERROR_STATUSES:
        if isinstance(error, error_class):
            status = error_status
            break

    payload: dict[str, Any] = {'error': str(error)}
    if isinstance(error, ShareLinkExpiredError):
        payload['expiry'] = error.expiry.isoformat()
    if isinstance(error, UnavailableError):
        payload = {'error': 'Storage is unavailable', 'details': str(error)}
    return JsonResponse(payload, status=status)


def api_view(
    *methods: str,
    allow_anonymous: bool = False,
) -> Callable[[IdentityView], Callable[[HttpRequest], HttpResponse]]:
    """Decorate a JSON view taking ``(request, identity, **kwargs)``.

    Args:
        methods: Allowed HTTP methods.
        allow_anonymous: Call the view with identity '' instead of
            answering 401 for anonymous callers.

    Returns:
        Decorator.
    """
    def decorator(view: IdentityView) -> Callable[..., HttpResponse]:
        @require_http_methods(list(methods))
        @functools.wraps(view)
        def wrapper(request: HttpRequest, **kwargs: Any) -> HttpResponse:
            identity = identity_of(request)
            if not identity and not allow_anonymous:
                return error_response(
                    UnauthorizedError('Authentication required'),
                )
            try:
                return view(request, identity, **kwargs)
            except (DriveError, ValueError) as error:
                if isinstance(error, (ConfigurationError, UnavailableError)):
                    logger.error(
                        'Request %s %s failed: %s',
                        request.method,
                        request.path,
                        error,
                    )
                return error_response(error)
        return wrapper
    return decorator


def tenant_view(
    *methods: str,
) -> Callable[[Callable[..., HttpResponse]], Callable[..., HttpResponse]]:
    """Decorate a JSON view taking ``(request, storage, **kwargs)``.

    The caller's tenant bucket is created on first use.
    """
    def decorator(view: Callable[..., HttpResponse]) -> Callable[..., HttpResponse]:
        @api_view(*methods)
        @functools.wraps(view)
        def wrapper(
            request: HttpRequest,
            identity: str,
            **kwargs: Any,
        ) -> HttpResponse:
            storage: TenantStorage = get_tenant_storage(identity)
            return view(request, storage, **kwargs)
        return wrapper
    return decorator
