"""Generate the Kamal secrets file that fetches a project's bundle."""
import os
import logging
import tempfile
from pathlib import Path
from typing import Iterable, Union

from ..domains.models import ProjectHandle

logger = logging.getLogger(__name__)

DEFAULT_CREDENTIAL_KEY = "KAMAL_REGISTRY_PASSWORD"
BUNDLE_VARIABLE = "SECRETS"

HEADER = (
    "# Generated by kamal-secrets-sync for Bitwarden project '{name}'.\n"
    "# Changes are overwritten on the next sync.\n"
)


def emit_deployment_reference(
    project: ProjectHandle,
    required: Iterable[str],
    credential_key: str = DEFAULT_CREDENTIAL_KEY,
) -> str:
    """
    Render the .kamal/secrets text for a project.

    One fetch of the whole project bundle, then one extract line for the
    registry credential key followed by each required key.
    """
    lines = [
        HEADER.format(name=project.name),
        f"{BUNDLE_VARIABLE}=$(kamal secrets fetch --adapter bitwarden-sm {project.id}/all)\n",
        "\n",
    ]
    for key in dict.fromkeys([credential_key, *required]):
        lines.append(f"{key}=$(kamal secrets extract {key} ${{{BUNDLE_VARIABLE}}})\n")
    return "".join(lines)


def write_deployment_reference(path: Union[str, Path], text: str) -> Path:
    """
    Atomically replace the reference file with text.

    Writes to a temporary file next to the target, then renames it over.
    """
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=str(target.parent))
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as f:
            f.write(text)
        os.replace(tmp_name, target)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    logger.info(f"Wrote deployment reference to {target}")
    return target
