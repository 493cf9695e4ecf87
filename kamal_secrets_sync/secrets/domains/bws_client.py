"""Bitwarden Secrets Manager client wrapper around the ``bws`` CLI."""
import os
import json
import shutil
import logging
import subprocess
from typing import Any, Dict, List, Optional, Sequence

from .errors import RegistryTimeout, RegistryUnavailable

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_ACCESS_TOKEN_ENV = "BWS_ACCESS_TOKEN"


class BwsSecretClient:
    """Wrapper around the Bitwarden Secrets Manager CLI.

    Every call runs ``bws`` with JSON output and its own timeout. Timeouts raise
    RegistryTimeout; every other failure raises RegistryUnavailable.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        access_token_env: str = DEFAULT_ACCESS_TOKEN_ENV,
        executable: str = "bws",
    ):
        self.timeout = timeout
        self.access_token_env = access_token_env
        self.executable = executable

    def access_token_present(self) -> bool:
        return bool((os.getenv(self.access_token_env) or "").strip())

    def check(self) -> Dict[str, bool]:
        """
        Check the local prerequisites for talking to the registry.

        Returns:
            Dict with 'executable' and 'access_token' booleans
        """
        return {
            "executable": shutil.which(self.executable) is not None,
            "access_token": self.access_token_present(),
        }

    def _child_env(self) -> Dict[str, str]:
        env = dict(os.environ)
        token = os.getenv(self.access_token_env)
        if token and self.access_token_env != "BWS_ACCESS_TOKEN":
            env["BWS_ACCESS_TOKEN"] = token
        return env

    def _run_json(self, operation: str, args: Sequence[str]) -> Any:
        """
        Run a bws subcommand and decode its JSON output.

        Args:
            operation: Short name used in errors and logs (e.g. 'project list')
            args: Arguments after the executable

        Raises:
            RegistryTimeout: If the call exceeds self.timeout
            RegistryUnavailable: On any other failure
        """
        cmd = [self.executable, *args, "--output", "json", "--color", "no"]
        logger.debug(f"Running bws {operation} (timeout {self.timeout:g}s)")
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
                env=self._child_env(),
            )
        except subprocess.TimeoutExpired:
            raise RegistryTimeout(operation, self.timeout)
        except FileNotFoundError:
            raise RegistryUnavailable(
                f"{self.executable} CLI not found in PATH (install Bitwarden Secrets Manager CLI: bws)"
            )
        except OSError as e:
            raise RegistryUnavailable(f"bws {operation} failed to start: {e}")

        if result.returncode != 0:
            # stderr may echo arguments, so only its first line is surfaced
            detail = (result.stderr or "").strip().splitlines()
            message = f"bws {operation} failed (exit code {result.returncode})"
            if detail:
                message = f"{message}: {detail[0]}"
            raise RegistryUnavailable(message)

        try:
            return json.loads(result.stdout)
        except ValueError as e:
            raise RegistryUnavailable(f"bws {operation} returned non-JSON output: {e}")

    @staticmethod
    def _records(data: Any, operation: str, fields: Sequence[str]) -> List[Dict[str, str]]:
        """Keep the list items that carry string values for every field."""
        if not isinstance(data, list):
            raise RegistryUnavailable(f"bws {operation} returned unexpected JSON shape")
        records = []
        for item in data:
            if not isinstance(item, dict):
                continue
            if all(isinstance(item.get(name), str) for name in fields):
                records.append({name: item[name] for name in fields})
        return records

    @staticmethod
    def _id_of(data: Any, operation: str) -> str:
        if not isinstance(data, dict) or not isinstance(data.get("id"), str):
            raise RegistryUnavailable(f"bws {operation} did not return an id")
        return data["id"]

    def list_projects(self) -> List[Dict[str, str]]:
        """List projects as [{'name': ..., 'id': ...}]."""
        data = self._run_json("project list", ["project", "list"])
        return self._records(data, "project list", ("name", "id"))

    def create_project(self, name: str) -> str:
        """Create a project and return its id."""
        data = self._run_json("project create", ["project", "create", name])
        return self._id_of(data, "project create")

    def list_secrets(self, project_id: str) -> List[Dict[str, str]]:
        """List secrets bound to a project as [{'key': ..., 'id': ...}]."""
        data = self._run_json("secret list", ["secret", "list", project_id])
        return self._records(data, "secret list", ("key", "id"))

    def create_secret(self, key: str, value: str, project_id: str) -> str:
        """Create a secret in a project and return its id."""
        data = self._run_json("secret create", ["secret", "create", key, value, project_id])
        return self._id_of(data, "secret create")

    def edit_secret(self, secret_id: str, key: str, value: str) -> Optional[str]:
        """Overwrite an existing secret's key and value."""
        data = self._run_json(
            "secret edit",
            ["secret", "edit", secret_id, "--key", key, "--value", value],
        )
        if isinstance(data, dict):
            return data.get("id")
        return None
