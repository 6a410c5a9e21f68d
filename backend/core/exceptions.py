from rest_framework import status
from rest_framework.response import Response


class ServiceError(Exception):
    """
    Base class for errors raised by the app services.
    Each subclass carries the HTTP status the API answers with.
    """
    status_code = status.HTTP_400_BAD_REQUEST


class NotFound(ServiceError, LookupError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidOperation(ServiceError, ValueError):
    status_code = status.HTTP_400_BAD_REQUEST


class Forbidden(ServiceError, PermissionError):
    status_code = status.HTTP_403_FORBIDDEN


def error_response(exc):
    return Response({"error": str(exc)}, status=exc.status_code)
