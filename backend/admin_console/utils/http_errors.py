from fastapi import HTTPException

from admin_console.errors import AdminConsoleError, user_message


def http_error(exc: AdminConsoleError, fallback: str) -> HTTPException:
    """Convert a workflow failure into the HTTPException a route raises."""
    headers = {"WWW-Authenticate": "Bearer"} if exc.http_status == 401 else None
    return HTTPException(
        status_code=exc.http_status,
        detail=user_message(exc, fallback),
        headers=headers,
    )
