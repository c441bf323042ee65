# Overview: JSON error responses for domain failures.

from __future__ import annotations

HTTP_STATUS_BY_KIND = {
    "validation": 400,
    "reference_not_found": 404,
    "insufficient_stock": 409,
    "persistence": 503,
}


def error_response(error):
    """(body, status) for a BackofficeError or a services.commit_service.CommitError."""
    status = HTTP_STATUS_BY_KIND.get(error.kind, 400)
    return error.to_dict(), status
