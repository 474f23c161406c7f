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

"""Orchestration of the provisioning steps into the install workflow."""

from __future__ import annotations

from mlops_env.abort import AbortController
from mlops_env.cluster import bootstrap_cluster
from mlops_env.config import InstallConfig, RunParameters
from mlops_env.constants import DEPLOY_MODE_KUSTOMIZE, KUSTOMIZE_COMMAND, REQUIRED_COMMANDS
from mlops_env.infra import provision_infrastructure
from mlops_env.instance import ensure_instance
from mlops_env.preflight import check_prerequisites, configure_project
from mlops_env.waiter import wait_for_ui

# Step names, in execution order.
STEP_PREREQUISITES = "prerequisites"
STEP_PREFLIGHT = "preflight"
STEP_INSTANCE = "notebook-instance"
STEP_INFRA = "infrastructure"
STEP_BOOTSTRAP = "cluster-bootstrap"
STEP_COMPLETION = "completion"


def _required_commands(cfg: InstallConfig) -> list[str]:
    commands = list(REQUIRED_COMMANDS)
    if cfg.deploy_mode == DEPLOY_MODE_KUSTOMIZE:
        commands.append(KUSTOMIZE_COMMAND)
    return commands


def run_install(
    params: RunParameters,
    cfg: InstallConfig,
    controller: AbortController,
    *,
    skip_instance: bool = False,
) -> str:
    """Run every provisioning step in order and return the KFP UI URL.

    Each step runs inside ``controller.step`` so the first failing command
    stops the run. Terraform outputs are only available once the
    infrastructure step has returned and are handed to the bootstrap
    explicitly.

    Args:
        params: Resolved run parameters.
        cfg: Installer settings.
        controller: Abort controller wrapping every step.
        skip_instance: Whether to skip the notebook instance step.

    Returns:
        The KFP UI URL, or an empty string if it was not published.

    Raises:
        StepFailedError: If an external command fails.
        RuntimeError: If a prerequisite or an expected output is missing.
    """
    with controller.step(STEP_PREREQUISITES):
        check_prerequisites(_required_commands(cfg))

    with controller.step(STEP_PREFLIGHT):
        configure_project(params.project_id)

    if not skip_instance:
        with controller.step(STEP_INSTANCE):
            ensure_instance(params, cfg)

    with controller.step(STEP_INFRA):
        outputs = provision_infrastructure(
            params, cfg.terraform_dir,
            require_sql=cfg.deploy_mode == DEPLOY_MODE_KUSTOMIZE,
        )

    with controller.step(STEP_BOOTSTRAP):
        bootstrap_cluster(params, outputs, cfg)

    with controller.step(STEP_COMPLETION):
        return wait_for_ui(params.namespace, cfg)
