from admin_console.models.enums import DisputeStatus

_API_TO_DISPLAY: dict[DisputeStatus, str] = {
    DisputeStatus.NEW: "new",
    DisputeStatus.OPEN: "open",
    DisputeStatus.UNDER_REVIEW: "under review",
    DisputeStatus.RESOLVED: "resolved",
}

_DISPLAY_TO_API: dict[str, DisputeStatus] = {v: k for k, v in _API_TO_DISPLAY.items()}

TERMINAL_DISPUTE_STATUSES = frozenset({DisputeStatus.RESOLVED})


def to_api_status(status: str | DisputeStatus) -> DisputeStatus:
    """Accept either the API value ('UNDER_REVIEW') or the display one ('Under review')."""
    if isinstance(status, DisputeStatus):
        return status
    try:
        return DisputeStatus(status.upper())
    except ValueError:
        pass
    try:
        return _DISPLAY_TO_API[status.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown dispute status: {status!r}") from None


def to_display_status(status: str | DisputeStatus) -> str:
    return _API_TO_DISPLAY[to_api_status(status)]


def status_label(status: str | DisputeStatus) -> str:
    """'UNDER_REVIEW' -> 'Under review'."""
    display = to_display_status(status)
    return display[0].upper() + display[1:]


def is_terminal(status: str | DisputeStatus) -> bool:
    return to_api_status(status) in TERMINAL_DISPUTE_STATUSES
