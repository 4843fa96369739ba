"""Domain errors raised by the thread and inquiry services.

Routers translate these to HTTP responses; the services never import FastAPI.
"""


class DeskError(Exception):
    status_code = 500


class ValidationError(DeskError):
    status_code = 400


class RecallWindowExpired(ValidationError):
    pass


class PermissionDenied(DeskError):
    status_code = 403


class NotFound(DeskError):
    status_code = 404
