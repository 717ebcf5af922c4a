"""
Standardized API response helpers.

Provides consistent JSON response format across all API endpoints:

    Success:  {"success": true, "data": {...}, "message": "..."}
    Error:    {"success": false, "error": "message", "error_type": "..."}

Usage:
    from utils.api_response import api_success, api_error, api_result

    return api_success(data={'id': 1}, message='Created')
    return api_error('Missing data', status=400)
    return api_result(create_reservation(payload), success_status=201)
"""

from flask import jsonify
from typing import Any

# HTTP status per engine error type
ERROR_STATUS = {
    'validation': 400,
    'invalid_state': 400,
    'not_found': 404,
    'forbidden': 403,
    'conflict': 409,
    'unavailable': 409,
    'operational': 500,
}


def api_success(
    data: dict | None = None,
    message: str | None = None,
    warning: str | None = None,
    status: int = 200,
    **extra_fields: Any
) -> tuple:
    """
    Build a standardized success JSON response.

    Args:
        data: Optional dict to include as 'data' key.
        message: Optional success message.
        warning: Optional warning message.
        status: HTTP status code (default 200).
        **extra_fields: Additional top-level fields to include in the response.

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': True}

    if data is not None:
        response['data'] = data

    if message:
        response['message'] = message

    if warning:
        response['warning'] = warning

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def api_error(error: str, status: int = 400, **extra_fields: Any) -> tuple:
    """
    Build a standardized error JSON response.

    Args:
        error: Error message.
        status: HTTP status code (default 400).
        **extra_fields: Additional top-level fields (e.g., errors, alternatives).

    Returns:
        Tuple of (Response, status_code)
    """
    response = {'success': False, 'error': error}

    if extra_fields:
        response.update(extra_fields)

    return jsonify(response), status


def api_result(result: dict, success_status: int = 200) -> tuple:
    """
    Convert an engine result dict into a response.

    Successful results carry their payload under 'data'; failures are mapped
    to a status code by error_type and keep their extra fields at top level.

    Args:
        result: {'success', 'message', 'error_type', ...payload}
        success_status: Status code for successful results

    Returns:
        Tuple of (Response, status_code)
    """
    payload = {k: v for k, v in result.items() if k not in ('success', 'message', 'error_type')}

    if result.get('success'):
        return api_success(data=payload, message=result.get('message') or None, status=success_status)

    error_type = result.get('error_type') or 'operational'
    return api_error(
        result.get('message') or 'Request failed',
        status=ERROR_STATUS.get(error_type, 400),
        error_type=error_type,
        **payload
    )
