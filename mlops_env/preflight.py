# /*
# Copyright 2026 The MLOps Env Authors.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# */

"""Prerequisite checks, project selection, service enablement, and Cloud Build IAM."""

from __future__ import annotations

from collections.abc import Iterable

from rich.panel import Panel

from mlops_env import console, tools
from mlops_env.constants import (
    CLOUD_BUILD_SA_DOMAIN,
    CLOUD_BUILD_SA_ROLE,
    REQUIRED_COMMANDS,
    REQUIRED_SERVICES,
)


def check_prerequisites(commands: Iterable[str] = REQUIRED_COMMANDS) -> None:
    """Verify every CLI the installer drives is on PATH.

    Raises:
        RuntimeError: If any command is missing.
    """
    console.print(Panel.fit("Checking prerequisites", style="bold blue"))
    for cmd in commands:
        tools.require_command(cmd)
    console.print("[green]\u2705 All required tools are available[/green]")


def set_project(project_id: str) -> None:
    console.print(f"[yellow]\u2139\ufe0f  Setting the project to: {project_id}[/yellow]")
    tools.gcloud("config", "set", "project", project_id)


def enable_services(project_id: str, services: Iterable[str] = REQUIRED_SERVICES) -> None:
    """Enable the backend services KFP and the notebook depend on.

    Enabling an already enabled service is a no-op on the API side.

    Args:
        project_id: Target project.
        services: Service names (``*.googleapis.com``).
    """
    console.print("[yellow]\u2139\ufe0f  Enabling required services[/yellow]")
    tools.gcloud("services", "enable", *services, "--project", project_id)
    console.print("[green]\u2705 Required services enabled[/green]")


def cloud_build_service_account(project_id: str) -> str:
    """Resolve the project number and derive the Cloud Build service account."""
    project_number = tools.gcloud(
        "projects", "describe", project_id, "--format=value(projectNumber)",
    ).strip()
    if not project_number:
        raise RuntimeError(f"Could not resolve the project number of {project_id}")
    return f"{project_number}@{CLOUD_BUILD_SA_DOMAIN}"


def grant_cloud_build_role(project_id: str, role: str = CLOUD_BUILD_SA_ROLE) -> str:
    """Grant the Cloud Build service account *role* on the project.

    Repeated grants are no-ops on the API side.

    Returns:
        The service account that received the role.
    """
    service_account = cloud_build_service_account(project_id)
    console.print(f"[yellow]\u2139\ufe0f  Assigning {service_account} to {role}[/yellow]")
    tools.gcloud(
        "projects", "add-iam-policy-binding", project_id,
        "--member", f"serviceAccount:{service_account}",
        "--role", role,
    )
    console.print("[green]\u2705 Cloud Build service account configured[/green]")
    return service_account


def configure_project(project_id: str) -> str:
    """Bring *project_id* to a state where builds and deployments can proceed.

    Returns:
        The Cloud Build service account email.
    """
    console.print(Panel.fit(f"Configuring project {project_id}", style="bold blue"))
    set_project(project_id)
    enable_services(project_id)
    return grant_cloud_build_role(project_id)
