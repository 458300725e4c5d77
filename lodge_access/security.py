# lodge_access/security.py
"""Startup validation of the secrets the service signs tokens with."""
import os
import re
from typing import List, Tuple

from loguru import logger

# Known placeholder secrets that must never reach production
FORBIDDEN_CREDENTIALS = {
    "fallback-secret",
    "test-jwt-secret",
    "your-jwt-secret-here",
    "changeme",
    "secret",
    "password",
    "admin",
    "123456",
}


def validate_credential_strength(
    credential: str, min_length: int = 32
) -> Tuple[bool, List[str]]:
    """
    Validate credential meets minimum security requirements.

    Args:
        credential: The credential to validate
        min_length: Minimum required length (default 32 for signing keys)

    Returns:
        Tuple of (is_valid, list_of_issues)
    """
    issues = []

    if not credential:
        issues.append("Credential is empty")
        return False, issues

    if len(credential) < min_length:
        issues.append(f"Credential too short (minimum {min_length} characters)")

    if credential.lower() in FORBIDDEN_CREDENTIALS:
        issues.append("Using forbidden placeholder credential")

    if re.match(r'^[a-z]+$', credential.lower()):
        issues.append(
            "Credential contains only letters (should include numbers/symbols)"
        )

    unique_chars = len(set(credential))
    if unique_chars < 10:
        issues.append("Credential has low entropy (too few unique characters)")

    return len(issues) == 0, issues


def validate_production_secrets() -> Tuple[bool, List[str]]:
    """
    Validate the token secret and database settings.

    Returns:
        Tuple of (all_valid, list_of_all_issues)
    """
    all_issues = []
    deployment_mode = os.getenv("DEPLOYMENT_MODE", "local").lower()

    if os.getenv("TESTING") == "1" or os.getenv("PYTEST_CURRENT_TEST"):
        return True, []

    jwt_secret = os.getenv("JWT_SECRET")
    if jwt_secret:
        is_valid, issues = validate_credential_strength(jwt_secret, min_length=32)
        if not is_valid:
            all_issues.extend([f"JWT_SECRET: {issue}" for issue in issues])
    else:
        all_issues.append("JWT_SECRET is not set")

    if deployment_mode == "production":
        db_url = os.getenv("DATABASE_URL", "")
        if not db_url:
            all_issues.append("DATABASE_URL is not set for production deployment")
        elif "sqlite" in db_url.lower():
            all_issues.append(
                "DATABASE_URL: SQLite not recommended for production (use PostgreSQL)"
            )

    return len(all_issues) == 0, all_issues


def check_secrets_on_startup(strict: bool = False) -> None:
    """
    Log every secret problem found; raise ValueError when ``strict``.
    """
    is_valid, issues = validate_production_secrets()
    if is_valid:
        return

    logger.error("=" * 80)
    logger.error("SECURITY VALIDATION FAILED - WEAK OR MISSING SECRETS DETECTED")
    logger.error("=" * 80)
    for issue in issues:
        logger.error(f"  - {issue}")
    logger.error("To fix, generate a strong secret:")
    logger.error("     python -c \"import secrets; print(secrets.token_urlsafe(32))\"")
    logger.error("=" * 80)

    if strict:
        raise ValueError(
            f"Security validation failed: {len(issues)} issue(s) found. "
            "Fix secrets before deploying to production."
        )
