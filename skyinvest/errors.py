# skyinvest/errors.py
from __future__ import annotations

from flask import Flask, jsonify


class ServiceError(Exception):
    """Base class for errors raised by the service layer."""

    status_code = 400

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"msg": self.message, "error": type(self).__name__}


class ValidationError(ServiceError):
    status_code = 400


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 409


class CapacityError(ConflictError):
    """Requested or approved shares exceed what the business has left."""


class StateError(ServiceError):
    status_code = 409


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def _service_error(err: ServiceError):
        if err.status_code >= 500:
            app.logger.error("Service error: %s", err.message)
        return jsonify(err.to_dict()), err.status_code
