#!/usr/bin/env python3
# scripts/check_secrets.py
"""Pre-commit hook rejecting .env files with placeholder or weak JWT secrets."""
import re
import sys
from pathlib import Path

from lodge_access.security import validate_credential_strength

FORBIDDEN_PATTERNS = [
    r"fallback-secret",
    r"test-jwt-secret",
    r"your-jwt-secret",
    r"CHANGE_ME",
    r"changeme",
    r"password123",
]


def check_file(filepath: Path) -> tuple[bool, list[str]]:
    issues = []

    try:
        lines = filepath.read_text().splitlines()
    except OSError as e:
        return False, [f"Error reading file: {e}"]

    for line_num, line in enumerate(lines, 1):
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue

        for pattern in FORBIDDEN_PATTERNS:
            if re.search(pattern, stripped, re.IGNORECASE):
                issues.append(f"Line {line_num}: forbidden pattern '{pattern}'")

        key, sep, value = stripped.partition("=")
        if sep and key.strip() == "JWT_SECRET":
            ok, problems = validate_credential_strength(value.strip().strip("'\""))
            if not ok:
                issues.extend(f"Line {line_num}: JWT_SECRET {p}" for p in problems)

    return len(issues) == 0, issues


def env_files(paths):
    for raw in paths:
        path = Path(raw)
        if path.name.startswith(".env") and "example" not in path.name:
            yield path


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print("Usage: check_secrets.py <file> [<file> ...]")
        return 0

    failed = False
    for path in env_files(argv):
        passed, issues = check_file(path)
        if passed:
            continue
        failed = True
        print(f"\nSECURITY: weak or placeholder secrets in {path}")
        for issue in issues:
            print(f"   {issue}")

    if failed:
        print("\nGenerate a strong JWT_SECRET with:")
        print('  python -c "import secrets; print(secrets.token_urlsafe(32))"')
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
