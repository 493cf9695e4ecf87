"""Tests for the generated Kamal secrets file."""
from unittest import mock

import pytest

from kamal_secrets_sync.secrets.domains.models import ProjectHandle
from kamal_secrets_sync.secrets.workflows.deployment_reference import (
    emit_deployment_reference,
    write_deployment_reference,
)

PROJECT = ProjectHandle(name="shop", id="0f3c-77")


class TestEmitDeploymentReference:
    """Rendering the reference text."""

    def test_fetch_line_then_extract_lines(self):
        text = emit_deployment_reference(PROJECT, ["API_KEY", "DB_PASS"])
        lines = [line for line in text.splitlines() if line and not line.startswith("#")]

        assert lines == [
            "SECRETS=$(kamal secrets fetch --adapter bitwarden-sm 0f3c-77/all)",
            "KAMAL_REGISTRY_PASSWORD=$(kamal secrets extract KAMAL_REGISTRY_PASSWORD ${SECRETS})",
            "API_KEY=$(kamal secrets extract API_KEY ${SECRETS})",
            "DB_PASS=$(kamal secrets extract DB_PASS ${SECRETS})",
        ]

    def test_credential_key_is_not_duplicated(self):
        text = emit_deployment_reference(PROJECT, ["KAMAL_REGISTRY_PASSWORD", "API_KEY"])

        assert text.count("KAMAL_REGISTRY_PASSWORD=") == 1

    def test_custom_credential_key(self):
        text = emit_deployment_reference(PROJECT, [], credential_key="GHCR_TOKEN")

        assert "GHCR_TOKEN=$(kamal secrets extract GHCR_TOKEN ${SECRETS})" in text
        assert "KAMAL_REGISTRY_PASSWORD" not in text

    def test_header_names_project(self):
        assert "'shop'" in emit_deployment_reference(PROJECT, []).splitlines()[0]


class TestWriteDeploymentReference:
    """Atomic file replacement."""

    def test_creates_parent_and_writes(self, tmp_path):
        target = tmp_path / ".kamal" / "secrets"

        write_deployment_reference(target, "A=1\n")

        assert target.read_text(encoding="utf-8") == "A=1\n"

    def test_overwrites_existing_file(self, tmp_path):
        target = tmp_path / "secrets"
        target.write_text("old\n", encoding="utf-8")

        write_deployment_reference(target, "new\n")

        assert target.read_text(encoding="utf-8") == "new\n"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["secrets"]

    def test_failed_replace_keeps_old_file_and_cleans_up(self, tmp_path):
        target = tmp_path / "secrets"
        target.write_text("old\n", encoding="utf-8")

        with mock.patch(
            "kamal_secrets_sync.secrets.workflows.deployment_reference.os.replace",
            side_effect=OSError("disk full"),
        ):
            with pytest.raises(OSError):
                write_deployment_reference(target, "new\n")

        assert target.read_text(encoding="utf-8") == "old\n"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["secrets"]
