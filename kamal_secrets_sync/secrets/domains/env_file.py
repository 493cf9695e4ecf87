"""Reader for local ``KEY=VALUE`` env files."""
import logging
import re
from pathlib import Path
from typing import Dict, Iterable, Union

from .errors import SourceMissing

logger = logging.getLogger(__name__)

_LINE_PATTERN = re.compile(r'^([A-Za-z_][A-Za-z0-9_]*)=(.*)$')


def _strip_quotes(value: str) -> str:
    """Remove one layer of matching surrounding double or single quotes."""
    if len(value) >= 2 and value[0] == value[-1] and value[0] in ('"', "'"):
        return value[1:-1]
    return value


def parse_env_lines(lines: Iterable[str]) -> Dict[str, str]:
    """
    Parse env-file lines into a mapping.

    Rules:
        - Blank lines and lines starting with '#' (after leading whitespace) are ignored
        - KEY must match [A-Za-z_][A-Za-z0-9_]*, anything else is ignored
        - VALUE is the rest of the line, right-trimmed, with one layer of matching quotes removed
        - Later duplicates override earlier ones
    """
    secrets: Dict[str, str] = {}
    for lineno, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        stripped = line.lstrip()
        if not stripped or stripped.startswith("#"):
            continue

        match = _LINE_PATTERN.match(stripped)
        if not match:
            logger.debug(f"Ignoring unparseable env line {lineno}")
            continue

        key, value = match.group(1), match.group(2)
        if key in secrets:
            logger.debug(f"Duplicate key {key} on line {lineno}, last value wins")
        secrets[key] = _strip_quotes(value.rstrip())
    return secrets


def load_local_secrets(path: Union[str, Path]) -> Dict[str, str]:
    """
    Load key/value pairs from a local env file.

    Args:
        path: Path to the env file (e.g. .env)

    Returns:
        Dict of key -> value

    Raises:
        SourceMissing: If the file does not exist
    """
    env_path = Path(path)
    if not env_path.is_file():
        raise SourceMissing(f"Local secrets file not found: {env_path}")

    with open(env_path, 'r', encoding='utf-8-sig') as f:
        secrets = parse_env_lines(f)

    logger.info(f"Loaded {len(secrets)} local secrets from {env_path}")
    return secrets
