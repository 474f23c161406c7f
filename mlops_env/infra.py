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

"""Terraform-managed KFP infrastructure: GKE cluster, service account, bucket."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from rich.panel import Panel

from mlops_env import console, logger, tools
from mlops_env.config import RunParameters
from mlops_env.constants import (
    TF_OUTPUT_BUCKET,
    TF_OUTPUT_CLUSTER_NAME,
    TF_OUTPUT_CLUSTER_ZONE,
    TF_OUTPUT_KFP_SA_EMAIL,
    TF_OUTPUT_SQL_CONNECTION_NAME,
    TF_OUTPUT_SQL_NAME,
)

REQUIRED_OUTPUTS = (
    TF_OUTPUT_CLUSTER_NAME,
    TF_OUTPUT_KFP_SA_EMAIL,
    TF_OUTPUT_BUCKET,
    TF_OUTPUT_CLUSTER_ZONE,
)

# Required on top of REQUIRED_OUTPUTS when KFP is backed by Cloud SQL.
SQL_OUTPUTS = (
    TF_OUTPUT_SQL_NAME,
    TF_OUTPUT_SQL_CONNECTION_NAME,
)


class InfraOutputError(RuntimeError):
    """Terraform applied cleanly but did not expose an expected output."""


@dataclass(frozen=True)
class InfraOutputs:
    """Identifiers produced by ``terraform apply``.

    Attributes:
        cluster_name: GKE cluster name.
        kfp_sa_email: Email of the KFP service account.
        bucket_name: Artifact store bucket.
        cluster_zone: Zone of the GKE cluster.
        sql_name: Cloud SQL instance name, if the configuration declares one.
        sql_connection_name: Cloud SQL connection name, if declared.
    """

    cluster_name: str
    kfp_sa_email: str
    bucket_name: str
    cluster_zone: str
    sql_name: str | None = None
    sql_connection_name: str | None = None

    @classmethod
    def from_terraform(cls, outputs: dict, require_sql: bool = False) -> InfraOutputs:
        """Build from the parsed ``terraform output -json`` document.

        Args:
            outputs: Parsed ``terraform output -json`` document.
            require_sql: Whether the Cloud SQL outputs are required as well.

        Raises:
            InfraOutputError: If a required output is missing or empty.
        """
        values = {}
        for name, entry in outputs.items():
            value = entry.get("value") if isinstance(entry, dict) else entry
            if value is not None and value != "":
                values[name] = str(value)

        required = REQUIRED_OUTPUTS + SQL_OUTPUTS if require_sql else REQUIRED_OUTPUTS
        missing = [name for name in required if name not in values]
        if missing:
            raise InfraOutputError(f"Terraform outputs missing: {', '.join(missing)}")

        return cls(
            cluster_name=values[TF_OUTPUT_CLUSTER_NAME],
            kfp_sa_email=values[TF_OUTPUT_KFP_SA_EMAIL],
            bucket_name=values[TF_OUTPUT_BUCKET],
            cluster_zone=values[TF_OUTPUT_CLUSTER_ZONE],
            sql_name=values.get(TF_OUTPUT_SQL_NAME),
            sql_connection_name=values.get(TF_OUTPUT_SQL_CONNECTION_NAME),
        )


def terraform_vars(params: RunParameters) -> list[str]:
    """Build the ``-var`` arguments passed to ``terraform apply``."""
    variables = {
        "project_id": params.project_id,
        "region": params.region,
        "zone": params.zone,
        "name_prefix": params.name_prefix,
    }
    return [item for key, value in variables.items() for item in ("-var", f"{key}={value}")]


def read_outputs(terraform_dir: Path, require_sql: bool = False) -> InfraOutputs:
    raw = tools.terraform("output", "-json", cwd=terraform_dir)
    try:
        outputs = json.loads(raw or "{}")
    except json.JSONDecodeError as err:
        raise InfraOutputError(f"Could not parse terraform outputs: {err}") from err
    logger.debug("Terraform outputs: %s", sorted(outputs))
    return InfraOutputs.from_terraform(outputs, require_sql=require_sql)


def provision_infrastructure(
    params: RunParameters,
    terraform_dir: Path,
    require_sql: bool = False,
) -> InfraOutputs:
    """Converge the Terraform configuration and return its outputs.

    Convergence is Terraform's job; re-applying an unchanged configuration is
    a no-op on its side.

    Args:
        params: Run parameters forwarded as Terraform variables.
        terraform_dir: Terraform working directory.
        require_sql: Whether the Cloud SQL outputs must be present too.

    Returns:
        Identifiers consumed by the cluster bootstrap.

    Raises:
        InfraOutputError: If a required output is missing.
    """
    console.print(Panel.fit("Provisioning KFP infrastructure", style="bold blue"))
    tools.terraform("init", "-input=false", cwd=terraform_dir)
    tools.terraform("apply", "-auto-approve", "-input=false", *terraform_vars(params), cwd=terraform_dir)
    console.print("[green]\u2705 KFP infrastructure provisioned successfully[/green]")

    outputs = read_outputs(terraform_dir, require_sql=require_sql)
    console.print(f"[yellow]  cluster         : {outputs.cluster_name} ({outputs.cluster_zone})[/yellow]")
    console.print(f"[yellow]  service account : {outputs.kfp_sa_email}[/yellow]")
    console.print(f"[yellow]  artifact bucket : {outputs.bucket_name}[/yellow]")
    return outputs
