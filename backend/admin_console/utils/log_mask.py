"""Keep referral party PII and admin credentials out of shipped logs."""


def mask_email(email: str | None) -> str:
    """Mask an email address for logging: 'user@domain.com' -> 'u***@domain.com'."""
    if not email or "@" not in email:
        return "***"
    local, domain = email.rsplit("@", 1)
    if len(local) <= 1:
        return f"{local}***@{domain}"
    return f"{local[0]}***@{domain}"


def mask_token(token: str | None) -> str:
    """Show only the last four characters of a bearer token."""
    if not token or len(token) <= 8:
        return "***"
    return f"***{token[-4:]}"
