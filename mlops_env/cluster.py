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

"""GKE access, namespace and secret bootstrap, and KFP installation."""

from __future__ import annotations

import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from rich.panel import Panel

from mlops_env import console, logger, tools
from mlops_env.config import InstallConfig, RunParameters
from mlops_env.constants import (
    DEPLOY_MODE_KUSTOMIZE,
    GCP_CONFIGS_ENV,
    KFP_CRD_MANIFEST,
    KFP_ESTABLISHED_CRD,
    KFP_INSTALL_MANIFEST,
    KFP_MANIFESTS_BASE_URL,
    MYSQL_SECRET,
    USER_GCP_SA_ALIAS,
    USER_GCP_SA_KEY_FILE,
    USER_GCP_SA_SECRET,
)
from mlops_env.infra import InfraOutputError, InfraOutputs


# ============================================================================
# Cluster access and namespace
# ============================================================================

def get_credentials(project_id: str, outputs: InfraOutputs) -> None:
    """Point kubectl at the cluster Terraform created."""
    console.print(f"[yellow]\u2139\ufe0f  Fetching credentials for {outputs.cluster_name}[/yellow]")
    tools.gcloud(
        "container", "clusters", "get-credentials", outputs.cluster_name,
        "--zone", outputs.cluster_zone,
        "--project", project_id,
    )


def create_namespace(namespace: str) -> None:
    """Create *namespace*; an existing namespace is a failure."""
    console.print(f"[yellow]\u2139\ufe0f  Creating namespace {namespace}[/yellow]")
    tools.kubectl("create", "namespace", namespace)


def set_kustomize_namespace(namespace: str, kustomize_dir: Path) -> None:
    """Retarget the local kustomization at *namespace*.

    Only the kustomize deploy mode builds that kustomization, so lite mode
    skips this edit and does not need the kustomize binary.
    """
    tools.kustomize("edit", "set", "namespace", namespace, cwd=kustomize_dir)


# ============================================================================
# Service account secret
# ============================================================================

@contextmanager
def ephemeral_key_file(filename: str = USER_GCP_SA_KEY_FILE) -> Iterator[Path]:
    """Yield a path in a private temporary directory, removed on every exit path.

    Args:
        filename: File name to use; it becomes the secret key name.

    Yields:
        Path where the caller writes the key material.
    """
    with tempfile.TemporaryDirectory(prefix="mlops-env-") as tmp_dir:
        key_file = Path(tmp_dir) / filename
        try:
            yield key_file
        finally:
            key_file.unlink(missing_ok=True)
            logger.debug("Removed ephemeral key file %s", key_file)


def create_service_account_secret(project_id: str, namespace: str, sa_email: str) -> None:
    """Seed the ``user-gcp-sa`` secret with a fresh key of *sa_email*.

    The key is written to local disk only for the lifetime of this call.

    Args:
        project_id: Project owning the service account.
        namespace: Namespace the secret is created in.
        sa_email: Service account to mint the key for.
    """
    console.print(f"[yellow]\u2139\ufe0f  Configuring {USER_GCP_SA_SECRET} with a key of {sa_email}[/yellow]")
    with ephemeral_key_file() as key_file:
        tools.gcloud(
            "iam", "service-accounts", "keys", "create", str(key_file),
            f"--iam-account={sa_email}",
            "--project", project_id,
        )
        tools.kubectl(
            "create", "secret", "-n", namespace, "generic", USER_GCP_SA_SECRET,
            f"--from-file={key_file}",
            f"--from-file={USER_GCP_SA_ALIAS}={key_file}",
        )
    console.print(f"[green]\u2705 Secret {USER_GCP_SA_SECRET} created[/green]")


# ============================================================================
# KFP installation
# ============================================================================

def manifest_url(version: str, manifest: str) -> str:
    return f"{KFP_MANIFESTS_BASE_URL}/{version}/{manifest}"


def install_pipelines_lite(cfg: InstallConfig) -> None:
    """Apply the hosted pipeline-lite CRDs and namespaced install manifest.

    The install manifest carries its own namespace.

    Args:
        cfg: Installer settings with the KFP version and CRD wait timeout.
    """
    console.print(f"[yellow]\u2139\ufe0f  Applying KFP {cfg.pipeline_version} CRDs[/yellow]")
    tools.kubectl("apply", "-f", manifest_url(cfg.pipeline_version, KFP_CRD_MANIFEST))
    tools.kubectl(
        "wait", "--for", "condition=established",
        f"--timeout={cfg.crd_wait_timeout}s",
        KFP_ESTABLISHED_CRD,
    )
    console.print(f"[yellow]\u2139\ufe0f  Applying KFP {cfg.pipeline_version} namespaced install manifest[/yellow]")
    tools.kubectl("apply", "-f", manifest_url(cfg.pipeline_version, KFP_INSTALL_MANIFEST))


def create_sql_user(params: RunParameters, outputs: InfraOutputs, cfg: InstallConfig) -> None:
    """Create the Cloud SQL user and mirror its credentials into ``mysql-credential``."""
    console.print(f"[yellow]\u2139\ufe0f  Creating Cloud SQL user {cfg.sql_username} on {outputs.sql_name}[/yellow]")
    tools.gcloud(
        "sql", "users", "create", cfg.sql_username,
        f"--instance={outputs.sql_name}",
        f"--password={params.sql_password}",
        "--project", params.project_id,
    )
    tools.kubectl(
        "create", "secret", "-n", params.namespace, "generic", MYSQL_SECRET,
        f"--from-literal=username={cfg.sql_username}",
        f"--from-literal=password={params.sql_password}",
    )


def write_gcp_configs(outputs: InfraOutputs, kustomize_dir: Path) -> Path:
    """Write the connection settings the kustomization reads as a config map."""
    env_file = kustomize_dir / GCP_CONFIGS_ENV
    env_file.write_text(
        f"sql_connection_name={outputs.sql_connection_name or ''}\n"
        f"bucket_name={outputs.bucket_name}\n"
    )
    return env_file


def install_pipelines_kustomize(params: RunParameters, outputs: InfraOutputs, cfg: InstallConfig) -> None:
    """Install KFP from the local kustomization, backed by Cloud SQL and GCS."""
    create_sql_user(params, outputs, cfg)
    write_gcp_configs(outputs, cfg.kustomize_dir)
    console.print(f"[yellow]\u2139\ufe0f  Building and applying {cfg.kustomize_dir}[/yellow]")
    manifest = tools.kustomize("build", ".", cwd=cfg.kustomize_dir)
    tools.kubectl("apply", "-f", "-", stdin=manifest)


# ============================================================================
# Bootstrap
# ============================================================================

def bootstrap_cluster(params: RunParameters, outputs: InfraOutputs, cfg: InstallConfig) -> None:
    """Prepare the cluster and install KFP into ``params.namespace``.

    Order matters: credentials, namespace, service account secret, then the
    KFP manifests, which expect the secret to exist.

    Args:
        params: Run parameters.
        outputs: Identifiers from the infrastructure step.
        cfg: Installer settings.

    Raises:
        InfraOutputError: If kustomize mode lacks a Cloud SQL instance.
    """
    if cfg.deploy_mode == DEPLOY_MODE_KUSTOMIZE and not outputs.sql_name:
        raise InfraOutputError("Terraform did not output sql_name; kustomize mode needs a Cloud SQL instance")

    console.print(Panel.fit(f"Deploying KFP to {outputs.cluster_name}", style="bold blue"))
    get_credentials(params.project_id, outputs)
    create_namespace(params.namespace)
    if cfg.deploy_mode == DEPLOY_MODE_KUSTOMIZE:
        set_kustomize_namespace(params.namespace, cfg.kustomize_dir)
    create_service_account_secret(params.project_id, params.namespace, outputs.kfp_sa_email)

    if cfg.deploy_mode == DEPLOY_MODE_KUSTOMIZE:
        install_pipelines_kustomize(params, outputs, cfg)
    else:
        install_pipelines_lite(cfg)
    console.print("[green]\u2705 KFP deployed successfully[/green]")
