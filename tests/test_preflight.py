"""Tests for project preflight configuration."""

from __future__ import annotations

import pytest

from mlops_env import preflight, tools
from mlops_env.constants import REQUIRED_SERVICES


def test_configure_project_issues_commands_in_order(fake_tools):
    service_account = preflight.configure_project("proj1")

    assert service_account == "123456789@cloudbuild.gserviceaccount.com"
    lines = fake_tools.lines()
    assert lines[0] == "gcloud config set project proj1"
    assert lines[1].startswith("gcloud services enable")
    assert lines[2].startswith("gcloud projects describe proj1")
    assert lines[3] == (
        "gcloud projects add-iam-policy-binding proj1 "
        "--member serviceAccount:123456789@cloudbuild.gserviceaccount.com --role roles/editor"
    )


def test_enable_services_requests_every_service(fake_tools):
    preflight.enable_services("proj1")

    (call,) = fake_tools.matching("gcloud services enable")
    for service in REQUIRED_SERVICES:
        assert service in call.args
    assert "dataflow.googleapis.com" in call.args
    assert "sqladmin.googleapis.com" in call.args


def test_missing_project_number_is_an_error(fake_tools):
    fake_tools.on("gcloud projects describe", output="\n")
    with pytest.raises(RuntimeError, match="project number"):
        preflight.grant_cloud_build_role("proj1")
    assert not fake_tools.matching("gcloud projects add-iam-policy-binding")


def test_check_prerequisites_checks_each_command(monkeypatch):
    checked: list[str] = []
    monkeypatch.setattr(tools, "require_command", checked.append)
    preflight.check_prerequisites(["gcloud", "terraform"])
    assert checked == ["gcloud", "terraform"]


def test_check_prerequisites_propagates_missing_command(monkeypatch):
    def missing(cmd):
        raise RuntimeError(f"Required command '{cmd}' not found. Please install it first.")

    monkeypatch.setattr(tools, "require_command", missing)
    with pytest.raises(RuntimeError, match="terraform"):
        preflight.check_prerequisites(["terraform"])
