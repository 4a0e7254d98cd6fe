# Overview: Maps domain errors onto JSON error responses.

from flask import current_app, jsonify

from ..validation import ShelterError, TransactionFailure


def error_response(exc: ShelterError):
    if isinstance(exc, TransactionFailure):
        current_app.logger.error("Transaction rolled back: %s", exc, exc_info=exc.__cause__ or exc)
        return jsonify({"error": "Internal server error", "code": exc.code}), exc.http_status
    return jsonify(exc.to_dict()), exc.http_status
