# Overview: Maps service outcomes onto JSON responses.

from flask import jsonify

from .outcomes import NotFound, NotRegistered, PermissionDenied, ValidationFailure


def error_response(outcome):
    """
    Response for a failure outcome, or None when outcome is not a failure.

    Usage:
        failure = error_response(result)
        if failure:
            return failure
    """
    if isinstance(outcome, ValidationFailure):
        body = {"error": outcome.message}
        if outcome.field:
            body["field"] = outcome.field
        return jsonify(body), 400
    if isinstance(outcome, NotRegistered):
        return jsonify({"error": "Access denied: principal is not registered"}), 401
    if isinstance(outcome, PermissionDenied):
        return jsonify({
            "error": "Permission denied",
            "required_permission": outcome.operation,
            "message": outcome.reason,
        }), 403
    if isinstance(outcome, NotFound):
        return jsonify({"error": outcome.message}), 404
    return None


def body_error(data):
    """400 response when a parsed JSON body is not an object, None otherwise."""
    if isinstance(data, dict):
        return None
    return jsonify({"error": "Request body must be a JSON object"}), 400
