"""Reconcile required secret keys against local values and a registry project.

The registry ``client`` is any object offering ``list_projects``,
``create_project``, ``list_secrets``, ``create_secret`` and ``edit_secret``
(see :class:`BwsSecretClient`).
"""
import logging
from typing import Iterable, List, Mapping

from ..domains.errors import ApplyFailed, RegistryError, RegistryUnavailable
from ..domains.models import (
    ApplyReport,
    EntryOutcome,
    OutcomeStatus,
    PlanAction,
    PlanEntry,
    ProjectHandle,
    ReconciliationPlan,
)

logger = logging.getLogger(__name__)


def resolve_project(name: str, client, create: bool = True) -> ProjectHandle:
    """
    Find a registry project by exact name, creating it when absent.

    With create=False a missing project is not created; the returned
    handle has no id (``exists`` is False).

    Raises:
        ValueError: If name is empty
        RegistryUnavailable / RegistryTimeout: If listing or creation fails
    """
    if not name or not name.strip():
        raise ValueError("Project name cannot be empty")

    for project in client.list_projects():
        if project["name"] == name:
            logger.info(f"Using existing project '{name}' ({project['id']})")
            return ProjectHandle(name=name, id=project["id"])

    if not create:
        logger.info(f"Project '{name}' does not exist and would be created")
        return ProjectHandle(name=name, id=None)

    project_id = client.create_project(name)
    if not project_id:
        raise RegistryUnavailable(f"Registry did not return an id for new project '{name}'")
    logger.info(f"Created project '{name}' ({project_id})")
    return ProjectHandle(name=name, id=project_id)


def load_remote_secrets(project: ProjectHandle, client) -> dict:
    """
    Snapshot the secrets bound to a project.

    Returns:
        Dict of key -> registry secret id

    Raises:
        RegistryTimeout: If the listing exceeds the client's bounded wait
        RegistryUnavailable: On any other registry error
    """
    if not project.exists:
        return {}
    remote = {record["key"]: record["id"] for record in client.list_secrets(project.id)}
    logger.info(f"Project '{project.name}' holds {len(remote)} secrets")
    return remote


def reconcile(
    required: Iterable[str],
    local: Mapping[str, str],
    remote: Mapping[str, str],
) -> ReconciliationPlan:
    """
    Build the plan for each required key, in order and without duplicates.

    - key not in local  -> Skip
    - key in remote     -> Update with the remote id
    - otherwise         -> Create
    """
    entries: List[PlanEntry] = []
    for key in dict.fromkeys(required):
        if key not in local:
            entries.append(PlanEntry.skip(key))
        elif key in remote:
            entries.append(PlanEntry.update(key, local[key], remote[key]))
        else:
            entries.append(PlanEntry.create(key, local[key]))
    return ReconciliationPlan(entries=tuple(entries))


def _apply_entry(project: ProjectHandle, entry: PlanEntry, client) -> None:
    try:
        if entry.action == PlanAction.UPDATE:
            client.edit_secret(entry.remote_id, entry.key, entry.value)
        else:
            client.create_secret(entry.key, entry.value, project.id)
    except RegistryError as e:
        raise ApplyFailed(entry.key, str(e))


def apply_plan(project: ProjectHandle, plan: ReconciliationPlan, client) -> ApplyReport:
    """
    Execute the plan's create/update entries one by one.

    A failing entry is recorded and processing continues with the next one.
    Each key gets at most one registry call; nothing is retried.
    """
    outcomes: List[EntryOutcome] = []
    for entry in plan:
        if entry.action == PlanAction.SKIP:
            logger.warning(f"Skipping {entry.key}: {entry.reason}")
            outcomes.append(EntryOutcome(entry.key, entry.action, OutcomeStatus.SKIPPED, entry.reason))
            continue

        try:
            _apply_entry(project, entry, client)
        except ApplyFailed as e:
            logger.error(f"Failed to {entry.action.value} {e.key}: {e.reason}")
            outcomes.append(EntryOutcome(entry.key, entry.action, OutcomeStatus.FAILED, e.reason))
            continue

        logger.info(f"{entry.action.value.capitalize()}d {entry.key} in '{project.name}'")
        outcomes.append(EntryOutcome(entry.key, entry.action, OutcomeStatus.APPLIED))

    return ApplyReport(outcomes=tuple(outcomes))
