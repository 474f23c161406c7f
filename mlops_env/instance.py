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

"""AI Platform Notebook image build and instance provisioning."""

from __future__ import annotations

from dataclasses import dataclass

from rich.panel import Panel

from mlops_env import console, tools
from mlops_env.config import InstallConfig, RunParameters
from mlops_env.constants import INSTANCE_MAINTENANCE_POLICY, INSTANCE_SCOPES


@dataclass(frozen=True)
class ProvisionedInstance:
    """The development workstation after the provisioning step.

    Attributes:
        name: Instance name.
        zone: Zone the instance lives in.
        image_uri: Container image bound to the instance.
        created: False when an existing instance was found and left alone.
    """

    name: str
    zone: str
    image_uri: str
    created: bool


def instance_exists(name: str, zone: str) -> bool:
    """Check whether an instance called exactly *name* exists in *zone*."""
    found = tools.gcloud(
        "compute", "instances", "list",
        f"--filter=name={name}",
        "--zones", zone,
        "--format=value(name)",
    )
    return name in found.split()


def build_image(image_uri: str, cfg: InstallConfig) -> None:
    """Build the notebook container image with Cloud Build and push it.

    Args:
        image_uri: Registry reference to tag and push.
        cfg: Installer settings with the build context and timeout.
    """
    console.print(f"[yellow]\u2139\ufe0f  Building AI Platform Notebooks container image: {image_uri}[/yellow]")
    tools.gcloud(
        "builds", "submit",
        "--timeout", cfg.build_timeout,
        "--tag", image_uri,
        str(cfg.build_context),
    )
    console.print("[green]\u2705 Image built and pushed[/green]")


def create_instance(params: RunParameters, image_uri: str, cfg: InstallConfig) -> None:
    """Create the notebook VM running *image_uri*.

    Args:
        params: Run parameters with the instance name and zone.
        image_uri: Container image the notebook runtime binds to.
        cfg: Installer settings with machine and disk shape.
    """
    console.print(f"[yellow]\u2139\ufe0f  Starting provisioning of {params.instance_name} in {params.zone}[/yellow]")
    tools.gcloud(
        "compute", "instances", "create", params.instance_name,
        f"--zone={params.zone}",
        f"--image-family={cfg.image_family}",
        f"--machine-type={cfg.machine_type}",
        f"--image-project={cfg.image_project}",
        f"--maintenance-policy={INSTANCE_MAINTENANCE_POLICY}",
        f"--boot-disk-device-name={params.boot_disk_name}",
        f"--boot-disk-size={cfg.boot_disk_size}",
        f"--boot-disk-type={cfg.boot_disk_type}",
        f"--scopes={INSTANCE_SCOPES}",
        f"--metadata=proxy-mode=service_account,container={image_uri}",
    )
    console.print(f"[green]\u2705 Instance {params.instance_name} created[/green]")


def ensure_instance(params: RunParameters, cfg: InstallConfig) -> ProvisionedInstance:
    """Make sure exactly one notebook instance exists for (name, zone).

    An existing instance is left untouched and no image is built. The
    existence check and the creation are not atomic; concurrent runs against
    the same project are not supported.

    Args:
        params: Run parameters.
        cfg: Installer settings.

    Returns:
        The provisioned (or pre-existing) instance.
    """
    console.print(Panel.fit("Provisioning AI Platform Notebook", style="bold blue"))
    image_uri = cfg.image_uri(params.project_id)

    if instance_exists(params.instance_name, params.zone):
        console.print(
            f"[yellow]\u2139\ufe0f  Instance {params.instance_name} exists in {params.zone}. "
            "Skipping provisioning[/yellow]"
        )
        return ProvisionedInstance(params.instance_name, params.zone, image_uri, created=False)

    build_image(image_uri, cfg)
    create_instance(params, image_uri, cfg)
    return ProvisionedInstance(params.instance_name, params.zone, image_uri, created=True)
