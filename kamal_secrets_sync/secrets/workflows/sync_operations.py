"""Workflow that runs one full secret synchronisation."""
import logging

from ..domains.bws_client import BwsSecretClient
from ..domains.env_file import load_local_secrets
from ..domains.errors import ConfigError
from ..domains.manifest import load_required_keys, load_service_name
from ..domains.models import SyncResult, SyncSettings
from .deployment_reference import emit_deployment_reference, write_deployment_reference
from .reconciler import apply_plan, load_remote_secrets, reconcile, resolve_project

logger = logging.getLogger(__name__)


def _client_for(settings: SyncSettings) -> BwsSecretClient:
    return BwsSecretClient(timeout=settings.timeout, access_token_env=settings.access_token_env)


def project_name_for(settings: SyncSettings) -> str:
    """
    Determine the registry project name.

    Uses the configured project, falling back to the manifest's service name.

    Raises:
        ConfigError: If neither is available
    """
    if settings.project:
        return settings.project

    service = load_service_name(settings.manifest_path)
    if service:
        logger.info(f"No project configured, using manifest service name '{service}'")
        return service

    raise ConfigError(
        "No registry project configured. Pass --project, set KAMAL_SECRETS_PROJECT, "
        f"add 'project' to the config file or declare 'service' in {settings.manifest_path}"
    )


def sync_secrets(
    settings: SyncSettings,
    client=None,
    dry_run: bool = False,
    write_reference: bool = True,
) -> SyncResult:
    """
    Synchronise the manifest's secrets from the local env file into the registry.

    Steps run strictly in order: manifest, local source, project, remote
    snapshot, plan, apply, reference file. Anything failing before apply
    aborts the run without mutating the registry.

    Args:
        settings: Resolved run settings
        client: Registry client (a BwsSecretClient is built from settings if omitted)
        dry_run: Build the plan only; no apply, no reference file
        write_reference: Regenerate the deployment reference after applying

    Returns:
        SyncResult with the plan, and the apply report unless dry_run
    """
    required = load_required_keys(settings.manifest_path)
    local = load_local_secrets(settings.env_file)
    project_name = project_name_for(settings)

    if client is None:
        client = _client_for(settings)

    project = resolve_project(project_name, client, create=not dry_run)
    remote = load_remote_secrets(project, client)
    plan = reconcile(required, local, remote)
    logger.info(plan.describe())

    if dry_run:
        return SyncResult(project=project, plan=plan)

    report = apply_plan(project, plan, client)

    reference_path = None
    if write_reference:
        text = emit_deployment_reference(project, required, settings.credential_key)
        reference_path = str(write_deployment_reference(settings.reference_path, text))

    return SyncResult(project=project, plan=plan, report=report, reference_path=reference_path)


def regenerate_reference(settings: SyncSettings, client=None) -> str:
    """Rewrite only the deployment reference file; returns its path."""
    required = load_required_keys(settings.manifest_path)
    project_name = project_name_for(settings)

    if client is None:
        client = _client_for(settings)

    project = resolve_project(project_name, client)
    text = emit_deployment_reference(project, required, settings.credential_key)
    return str(write_deployment_reference(settings.reference_path, text))


def format_result(result: SyncResult) -> str:
    """Human-readable text for the end of a run."""
    lines = [f"Project: {result.project.describe()}", result.plan.describe()]
    if result.report is not None:
        lines.append(result.report.summary())
    if result.reference_path:
        lines.append(f"Deployment reference written to {result.reference_path}")
    return "\n".join(lines)
