"""Input validation for CLI arguments."""
import sys


def validate_project_name(name: str) -> None:
    """
    Validate a registry project name.

    Bitwarden project names are free text, but must not be blank or
    contain control characters (they are passed as a CLI argument).

    Raises:
        SystemExit with code 2 if validation fails
    """
    if not name or not name.strip():
        print("Error: Project name cannot be empty", file=sys.stderr)
        sys.exit(2)

    if any(ord(ch) < 32 or ord(ch) == 127 for ch in name):
        print(f"Error: Invalid project name {name!r}", file=sys.stderr)
        print("\nProject names cannot contain control characters (newlines, tabs, etc.)", file=sys.stderr)
        sys.exit(2)


def validate_timeout(value: float) -> None:
    """Exit with code 2 unless the timeout is a positive number of seconds."""
    if value <= 0:
        print(f"Error: Timeout must be a positive number of seconds, got {value:g}", file=sys.stderr)
        sys.exit(2)
