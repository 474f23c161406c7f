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

"""Run parameters, installer settings, and config display."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from rich.panel import Panel

from mlops_env import console
from mlops_env.constants import (
    BOOT_DISK_SUFFIX,
    CONTAINER_REGISTRY_HOST,
    DEFAULT_BOOT_DISK_SIZE,
    DEFAULT_BOOT_DISK_TYPE,
    DEFAULT_BUILD_CONTEXT,
    DEFAULT_BUILD_TIMEOUT,
    DEFAULT_CRD_WAIT_TIMEOUT_SECONDS,
    DEFAULT_ENDPOINT_POLL_INTERVAL_SECONDS,
    DEFAULT_IMAGE_FAMILY,
    DEFAULT_IMAGE_NAME,
    DEFAULT_IMAGE_PROJECT,
    DEFAULT_IMAGE_TAG,
    DEFAULT_KUSTOMIZE_DIR,
    DEFAULT_MACHINE_TYPE,
    DEFAULT_NAMESPACE,
    DEFAULT_PIPELINE_VERSION,
    DEFAULT_REGION,
    DEFAULT_SETTLE_SECONDS,
    DEFAULT_SQL_USERNAME,
    DEFAULT_TERRAFORM_DIR,
    DEFAULT_ZONE,
    DEPLOY_MODE_LITE,
    INSTANCE_SUFFIX,
    MAX_ARGS,
    MIN_ARGS,
)


class UsageError(ValueError):
    """Raised when the installer is invoked with a malformed argument list."""


# ============================================================================
# Run parameters
# ============================================================================

@dataclass(frozen=True)
class RunParameters:
    """Resolved positional arguments for one installer run.

    Attributes:
        project_id: Target Google Cloud project.
        sql_password: Password for the Cloud SQL user (kustomize mode only).
        name_prefix: Prefix for every named resource.
        region: Region passed to Terraform.
        zone: Zone for the notebook instance and Terraform.
        namespace: Kubernetes namespace KFP is installed into.
    """

    project_id: str
    sql_password: str
    name_prefix: str
    region: str = DEFAULT_REGION
    zone: str = DEFAULT_ZONE
    namespace: str = DEFAULT_NAMESPACE

    @property
    def instance_name(self) -> str:
        return f"{self.name_prefix}{INSTANCE_SUFFIX}"

    @property
    def boot_disk_name(self) -> str:
        return f"{self.instance_name}{BOOT_DISK_SUFFIX}"

    @property
    def cluster_label(self) -> str:
        """Name Terraform is expected to give the GKE cluster (display only)."""
        return f"{self.name_prefix}-cluster"


def resolve_parameters(args: Sequence[str | None]) -> RunParameters:
    """Validate the positional argument list and fill in defaults.

    Empty or ``None`` optional values fall back to their defaults; the name
    prefix defaults to the project id.

    Args:
        args: ``PROJECT_ID SQL_PASSWORD [NAME_PREFIX] [REGION] [ZONE] [NAMESPACE]``.

    Returns:
        Immutable run parameters.

    Raises:
        UsageError: If fewer than two or more than six arguments are given,
            or a required argument is empty.
    """
    values = list(args)
    while values and values[-1] is None:
        values.pop()
    if len(values) < MIN_ARGS or len(values) > MAX_ARGS:
        raise UsageError(f"expected {MIN_ARGS} to {MAX_ARGS} arguments, got {len(values)}")
    if not values[0] or values[1] is None:
        raise UsageError("PROJECT_ID and SQL_PASSWORD are required")

    values += [None] * (MAX_ARGS - len(values))
    project_id, sql_password, name_prefix, region, zone, namespace = values
    return RunParameters(
        project_id=project_id,
        sql_password=sql_password,
        name_prefix=name_prefix or project_id,
        region=region or DEFAULT_REGION,
        zone=zone or DEFAULT_ZONE,
        namespace=namespace or DEFAULT_NAMESPACE,
    )


# ============================================================================
# Installer settings
# ============================================================================

class InstallConfig(BaseSettings):
    """Installer settings, auto-loaded from MLOPS_* env vars.

    Attributes:
        image_name: Name of the notebook container image.
        image_tag: Tag of the notebook container image.
        build_context: Directory submitted to Cloud Build.
        build_timeout: Cloud Build timeout (gcloud duration syntax).
        machine_type: Compute Engine machine type of the notebook.
        image_family: Base VM image family.
        image_project: Project hosting the base VM image family.
        boot_disk_size: Boot disk size of the notebook.
        boot_disk_type: Boot disk type of the notebook.
        terraform_dir: Terraform working directory.
        kustomize_dir: Kustomize directory for the KFP deployment.
        deploy_mode: ``lite`` applies hosted manifests, ``kustomize`` builds locally.
        pipeline_version: KFP pipeline-lite release to apply.
        crd_wait_timeout: Seconds to wait for the Application CRD.
        sql_username: Cloud SQL user created in kustomize mode.
        settle_seconds: Fixed pause before looking up the KFP URL.
        endpoint_poll_attempts: Extra lookups after the pause; 0 disables polling.
        endpoint_poll_interval: Seconds between extra lookups.
    """

    model_config = SettingsConfigDict(env_prefix="MLOPS_", extra="ignore")

    image_name: str = DEFAULT_IMAGE_NAME
    image_tag: str = DEFAULT_IMAGE_TAG
    build_context: Path = Path(DEFAULT_BUILD_CONTEXT)
    build_timeout: str = Field(default=DEFAULT_BUILD_TIMEOUT, pattern=r"^\d+[smh]?$")
    machine_type: str = DEFAULT_MACHINE_TYPE
    image_family: str = DEFAULT_IMAGE_FAMILY
    image_project: str = DEFAULT_IMAGE_PROJECT
    boot_disk_size: str = Field(default=DEFAULT_BOOT_DISK_SIZE, pattern=r"^\d+(GB|TB)$")
    boot_disk_type: str = DEFAULT_BOOT_DISK_TYPE
    terraform_dir: Path = Path(DEFAULT_TERRAFORM_DIR)
    kustomize_dir: Path = Path(DEFAULT_KUSTOMIZE_DIR)
    deploy_mode: str = Field(default=DEPLOY_MODE_LITE, pattern=r"^(lite|kustomize)$")
    pipeline_version: str = Field(default=DEFAULT_PIPELINE_VERSION, pattern=r"^\d+\.\d+\.\d+(-[\w.]+)?$")
    crd_wait_timeout: int = Field(default=DEFAULT_CRD_WAIT_TIMEOUT_SECONDS, ge=1, le=3600)
    sql_username: str = DEFAULT_SQL_USERNAME
    settle_seconds: int = Field(default=DEFAULT_SETTLE_SECONDS, ge=0)
    endpoint_poll_attempts: int = Field(default=0, ge=0, le=100)
    endpoint_poll_interval: int = Field(default=DEFAULT_ENDPOINT_POLL_INTERVAL_SECONDS, ge=1)

    def image_uri(self, project_id: str) -> str:
        """Full registry reference of the notebook image for *project_id*."""
        return f"{CONTAINER_REGISTRY_HOST}/{project_id}/{self.image_name}:{self.image_tag}"


# ============================================================================
# Display
# ============================================================================

def display_config(params: RunParameters, cfg: InstallConfig, skip_instance: bool = False) -> None:
    """Print the resolved parameters and the settings relevant to this run.

    Args:
        params: Resolved run parameters.
        cfg: Installer settings.
        skip_instance: Whether the notebook instance step is skipped.
    """
    console.print(Panel.fit("Configuration", style="bold blue"))
    console.print("[yellow]Run parameters:[/yellow]")
    console.print(f"  project_id      : {params.project_id}")
    console.print(f"  sql_password    : {'*' * 8}")
    console.print(f"  name_prefix     : {params.name_prefix}")
    console.print(f"  region          : {params.region}")
    console.print(f"  zone            : {params.zone}")
    console.print(f"  namespace       : {params.namespace}")

    if not skip_instance:
        console.print("[yellow]Notebook instance:[/yellow]")
        console.print(f"  instance_name   : {params.instance_name}")
        console.print(f"  image_uri       : {cfg.image_uri(params.project_id)}")
        console.print(f"  machine_type    : {cfg.machine_type}")

    console.print("[yellow]KFP:[/yellow]")
    console.print(f"  deploy_mode     : {cfg.deploy_mode}")
    console.print(f"  version         : {cfg.pipeline_version}")
    console.print(f"  terraform_dir   : {cfg.terraform_dir}")
    console.print(f"  kustomize_dir   : {cfg.kustomize_dir}")
