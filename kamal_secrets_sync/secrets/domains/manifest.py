"""Loader for the secret declarations in a Kamal deploy manifest."""
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from .errors import ManifestMalformed, ManifestMissing

logger = logging.getLogger(__name__)


def _read_manifest(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read and parse the manifest document.

    Raises:
        ManifestMissing: If the file cannot be read
        ManifestMalformed: If the YAML is invalid or not a mapping
    """
    manifest_path = Path(path)
    try:
        with open(manifest_path, 'r', encoding='utf-8') as f:
            document = yaml.safe_load(f)
    except FileNotFoundError:
        raise ManifestMissing(f"Deploy manifest not found at: {manifest_path}")
    except OSError as e:
        raise ManifestMissing(f"Failed to read deploy manifest at {manifest_path}: {e}")
    except yaml.YAMLError as e:
        raise ManifestMalformed(f"Failed to parse YAML manifest at {manifest_path}: {e}")

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ManifestMalformed(f"Deploy manifest at {manifest_path} is not a mapping")
    return document


def _secret_declaration(section: Any, where: str) -> List[str]:
    """Return the raw ``env.secret`` list of a manifest section."""
    if section is None:
        return []
    if not isinstance(section, dict):
        raise ManifestMalformed(f"'{where}' must be a mapping")

    env = section.get('env')
    if env is None:
        return []
    if not isinstance(env, dict):
        # Plain ``env: {KEY: value}`` without clear/secret split declares no secrets
        return []

    declared = env.get('secret')
    if declared is None:
        return []
    if not isinstance(declared, list):
        raise ManifestMalformed(f"'{where}.env.secret' must be a list of key names")

    for entry in declared:
        if not isinstance(entry, str):
            raise ManifestMalformed(
                f"'{where}.env.secret' contains a non-string entry: {entry!r}"
            )
    return declared


def list_secret_keys(path: Union[str, Path]) -> List[str]:
    """
    List secret key names declared in a deploy manifest, in declaration order.

    Collects ``env.secret`` at the top level and under every accessory.
    Entries are returned as written (untrimmed, possibly duplicated).
    """
    document = _read_manifest(path)
    keys = list(_secret_declaration(document, "manifest"))

    accessories = document.get('accessories')
    if accessories is not None:
        if not isinstance(accessories, dict):
            raise ManifestMalformed("'accessories' must be a mapping")
        for name, accessory in accessories.items():
            keys.extend(_secret_declaration(accessory, f"accessories.{name}"))
    return keys


def normalize_keys(entries) -> Tuple[str, ...]:
    """Trim entries, drop empties and collapse duplicates keeping first position."""
    trimmed = (entry.strip() for entry in entries)
    return tuple(dict.fromkeys(key for key in trimmed if key))


def load_required_keys(path: Union[str, Path]) -> Tuple[str, ...]:
    """
    Load the set of secret keys a deployment requires.

    Args:
        path: Path to the Kamal deploy manifest (config/deploy.yml)

    Returns:
        Tuple of unique key names in declaration order

    Raises:
        ManifestMissing: If the manifest cannot be read
        ManifestMalformed: If the manifest cannot be parsed into a list
    """
    required = normalize_keys(list_secret_keys(path))
    logger.info(f"Manifest {path} declares {len(required)} secrets")
    return required


def load_service_name(path: Union[str, Path]) -> Optional[str]:
    """Return the manifest's ``service`` name, or None when not declared."""
    service = _read_manifest(path).get('service')
    if isinstance(service, str) and service.strip():
        return service.strip()
    return None
