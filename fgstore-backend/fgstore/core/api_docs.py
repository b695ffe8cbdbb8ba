from fgstore.schemas.common import ErrorOut


_ERROR_EXAMPLES: dict[int, tuple[str, str, str]] = {
    400: ("bad_request", "Cannot approve request: No items found in request", "/requests/req-id/approve"),
    401: ("unauthorized", "Invalid token", "/requests"),
    403: ("forbidden", "Insufficient role for this action", "/requests/req-id/approve"),
    404: ("not_found", "Request not found", "/requests/req-id"),
    409: ("conflict", "Showroom code already exists", "/showrooms"),
    422: ("validation_error", "Validation failed", "/dispatch/history-id"),
    500: ("internal_error", "Internal server error", "/dispatch/history-id"),
}


def error_responses(*status_codes: int) -> dict[int, dict]:
    responses: dict[int, dict] = {}
    for status_code in status_codes:
        code, message, path = _ERROR_EXAMPLES.get(
            status_code, ("http_error", "HTTP error", "/")
        )
        responses[status_code] = {
            "model": ErrorOut,
            "description": message,
            "content": {
                "application/json": {
                    "example": {
                        "error": {
                            "code": code,
                            "message": message,
                            "request_id": "request-id",
                            "path": path,
                            "details": None,
                        }
                    }
                }
            },
        }
    return responses
