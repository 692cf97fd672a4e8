"""Input validation for CLI arguments."""
import re
import sys
from typing import Iterable

SECRET_NAME_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')
REPOSITORY_PATTERN = re.compile(r'^[A-Za-z0-9_.-]+/[A-Za-z0-9_.-]+$')


def validate_repository(slug: str) -> None:
    """
    Validate a repository given as OWNER/REPO.

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not REPOSITORY_PATTERN.match(slug or ""):
        print(f"Error: Invalid repository '{slug}'", file=sys.stderr)
        print("\nExpected format: OWNER/REPO (e.g. octo-org/hello-world)", file=sys.stderr)
        sys.exit(2)


def validate_secret_names(names: Iterable[str], option: str) -> None:
    """
    Validate secret names passed through a list option.

    Secret names may contain only: [A-Za-z0-9_-]

    Args:
        names: Already split and trimmed names
        option: Option name, used in the error message

    Raises:
        SystemExit with code 2 if any name is invalid
    """
    invalid = [name for name in names if not SECRET_NAME_PATTERN.match(name)]
    if invalid:
        print(f"Error: Invalid secret name(s) in {option}: {', '.join(invalid)}", file=sys.stderr)
        print("\nAllowed characters: letters, numbers, underscores (_), hyphens (-)", file=sys.stderr)
        print("Separate names with commas, semicolons or newlines.", file=sys.stderr)
        sys.exit(2)
