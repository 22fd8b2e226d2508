"""
Password strength rules for citizen, worker and admin accounts.

A password needs at least MIN_PASSWORD_LENGTH characters with one
uppercase letter, one lowercase letter and one digit.
"""

import re

MIN_PASSWORD_LENGTH = 6

# (pattern that must match, message when it does not)
CHARACTER_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"[A-Z]"), "Password must contain at least one uppercase letter"),
    (re.compile(r"[a-z]"), "Password must contain at least one lowercase letter"),
    (re.compile(r"\d"), "Password must contain at least one digit"),
)


def validate_password_complexity(
    password: str, min_length: int = MIN_PASSWORD_LENGTH
) -> tuple[bool, list[str]]:
    """
    Check a password against every rule.

    Args:
        password: Candidate password
        min_length: Minimum number of characters

    Returns:
        Tuple of (is_valid, messages for every rule that failed)
    """
    errors = []
    if len(password) < min_length:
        errors.append(f"Password must be at least {min_length} characters long")
    errors.extend(
        message for pattern, message in CHARACTER_RULES if not pattern.search(password)
    )
    return not errors, errors
