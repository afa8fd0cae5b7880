from email_validator import EmailNotValidError, validate_email

from admin_gateway.exceptions import MissingParameter, ValidationError


def normalize_email(email: str | None) -> str:
    """Returns the lower-cased address, or raises ValidationError when malformed."""
    if not email:
        raise MissingParameter("Email is required.")
    try:
        validated = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationError(f"Invalid email address: {e}") from e
    return validated.normalized.lower()
