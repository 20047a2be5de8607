"""Password validation functions."""

MIN_PASSWORD_LENGTH = 8


def validate_password_strength(password: str) -> str:
    """Validate password strength requirements.

    Requirements:
    - At least 8 characters
    - At least one letter
    - At least one digit

    Args:
        password: Password string to validate

    Returns:
        The validated password string

    Raises:
        ValueError: If password doesn't meet strength requirements

    Examples:
        >>> validate_password_strength("correct-horse-7")
        'correct-horse-7'
        >>> validate_password_strength("onlyletters")
        Traceback (most recent call last):
        ...
        ValueError: Password must contain at least one digit

    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not any(c.isalpha() for c in password):
        raise ValueError("Password must contain at least one letter")
    if not any(c.isdigit() for c in password):
        raise ValueError("Password must contain at least one digit")
    if password.strip() != password:
        raise ValueError("Password must not start or end with whitespace")
    return password
