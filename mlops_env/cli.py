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

"""
cli.py - Provision the KFP environment.

Creates, in order: project services and Cloud Build IAM, the AI Platform
Notebook instance, the Terraform-managed GKE cluster and bucket, and a
namespaced KFP deployment. The first failing command aborts the run with
that command's exit status.

Environment Variables:
    Installer settings can be overridden via MLOPS_* environment variables:
    - MLOPS_IMAGE_NAME (default: mlops-dev)
    - MLOPS_PIPELINE_VERSION (default: from dependencies.yaml)
    - MLOPS_TERRAFORM_DIR (default: terraform)
    - MLOPS_SETTLE_SECONDS (default: 180)
    - And more (see InstallConfig for the full list)

Examples:
    # Defaults: prefix=project, us-central1 / us-central1-a, namespace kubeflow
    mlops-env-install my-project my-sql-password

    # Custom prefix and region
    mlops-env-install my-project my-sql-password team-a us-east1

    # Cluster only, Cloud SQL backed deployment
    mlops-env-install my-project my-sql-password --skip-instance --deploy-mode kustomize
"""

from __future__ import annotations

import logging
import sys

import typer
from rich.markup import escape

from mlops_env import console
from mlops_env.abort import AbortController, StepFailedError
from mlops_env.config import InstallConfig, UsageError, display_config, resolve_parameters
from mlops_env.constants import DEPLOY_MODE_KUSTOMIZE, DEPLOY_MODE_LITE, USAGE
from mlops_env.orchestrator import run_install

app = typer.Typer(help="Provision the KFP environment.", add_completion=False)


@app.command()
def install(
    project_id: str | None = typer.Argument(None, help="Target Google Cloud project"),
    sql_password: str | None = typer.Argument(None, help="Cloud SQL user password"),
    name_prefix: str | None = typer.Argument(None, help="Resource name prefix (default: PROJECT_ID)"),
    region: str | None = typer.Argument(None, help="Region (default: us-central1)"),
    zone: str | None = typer.Argument(None, help="Zone (default: us-central1-a)"),
    namespace: str | None = typer.Argument(None, help="KFP namespace (default: kubeflow)"),
    extra_args: list[str] | None = typer.Argument(None, hidden=True),
    skip_instance: bool = typer.Option(
        False, "--skip-instance", help="Skip the AI Platform Notebook instance"),
    deploy_mode: str | None = typer.Option(
        None, "--deploy-mode", help="lite (hosted manifests) or kustomize (Cloud SQL backed)"),
) -> None:
    """Provision the KFP environment.

    PROJECT_ID and SQL_PASSWORD are required; the remaining positional
    arguments fall back to their defaults when omitted.
    """
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )

    try:
        params = resolve_parameters(
            [project_id, sql_password, name_prefix, region, zone, namespace, *(extra_args or [])]
        )
    except UsageError as err:
        typer.echo(USAGE, err=True)
        typer.echo(f"Error: {err}", err=True)
        raise typer.Exit(code=1)

    if deploy_mode is not None and deploy_mode not in (DEPLOY_MODE_LITE, DEPLOY_MODE_KUSTOMIZE):
        raise typer.BadParameter(f"unknown deploy mode '{deploy_mode}'", param_hint="--deploy-mode")

    cfg = InstallConfig()
    if deploy_mode is not None:
        cfg = cfg.model_copy(update={"deploy_mode": deploy_mode})

    display_config(params, cfg, skip_instance=skip_instance)

    controller = AbortController(sensitive=[params.sql_password])
    try:
        url = run_install(params, cfg, controller, skip_instance=skip_instance)
    except StepFailedError as err:
        controller.abort(err)
    except Exception as e:
        console.print(f"[red]\u274c {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    console.print("[green]\u2705 KFP environment provisioned[/green]")
    console.print("[yellow]\u2139\ufe0f  KFP UI can be accessed at the below URI:[/yellow]")
    typer.echo(url)


def main() -> None:
    try:
        app()
    except Exception as e:
        console.print(f"[red]\u274c {escape(str(e))}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
