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

"""Constants, dependency loading, and dep_value helper."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml


def load_dependencies() -> dict:
    """Load pinned versions and fixed locations from dependencies.yaml.

    Returns:
        Parsed YAML content as a nested dictionary.
    """
    deps_file = Path(__file__).resolve().parent / "dependencies.yaml"
    with open(deps_file) as f:
        return yaml.safe_load(f)


DEPENDENCIES = load_dependencies()


def dep_value(*keys: str, default: Any = None) -> Any:
    """Safely traverse the DEPENDENCIES dict by key path.

    Args:
        *keys: Sequence of dictionary keys to traverse.
        default: Value to return if any key is missing.

    Returns:
        The value at the nested key path, or *default* if not found.
    """
    node = DEPENDENCIES
    for key in keys:
        if not isinstance(node, dict):
            return default
        node = node.get(key)
        if node is None:
            return default
    return node


# -- Run parameter defaults --
DEFAULT_REGION = "us-central1"
DEFAULT_ZONE = "us-central1-a"
DEFAULT_NAMESPACE = "kubeflow"

USAGE = (
    "USAGE:  mlops-env-install PROJECT_ID SQL_PASSWORD [NAME_PREFIX=PROJECT_ID] "
    "[REGION=us-central1] [ZONE=us-central1-a] [NAMESPACE=kubeflow]"
)
MIN_ARGS = 2
MAX_ARGS = 6

# -- Required CLIs --
REQUIRED_COMMANDS = ("gcloud", "kubectl", "terraform")
KUSTOMIZE_COMMAND = "kustomize"

# -- Project services --
REQUIRED_SERVICES: tuple[str, ...] = tuple(dep_value("services", default=[]))
CLOUD_BUILD_SA_DOMAIN = "cloudbuild.gserviceaccount.com"
CLOUD_BUILD_SA_ROLE = "roles/editor"

# -- Notebook instance --
INSTANCE_SUFFIX = "-notebook"
BOOT_DISK_SUFFIX = "-disk"
CONTAINER_REGISTRY_HOST = "gcr.io"
INSTANCE_MAINTENANCE_POLICY = "TERMINATE"
INSTANCE_SCOPES = "cloud-platform,userinfo-email"
DEFAULT_IMAGE_NAME = "mlops-dev"
DEFAULT_IMAGE_TAG = "latest"
DEFAULT_IMAGE_FAMILY = dep_value("notebook", "image_family", default="common-container")
DEFAULT_IMAGE_PROJECT = dep_value("notebook", "image_project", default="deeplearning-platform-release")
DEFAULT_MACHINE_TYPE = "n1-standard-4"
DEFAULT_BOOT_DISK_SIZE = "100GB"
DEFAULT_BOOT_DISK_TYPE = "pd-ssd"
DEFAULT_BUILD_TIMEOUT = "15m"

# -- Terraform outputs --
TF_OUTPUT_CLUSTER_NAME = "cluster_name"
TF_OUTPUT_KFP_SA_EMAIL = "kfp_sa_email"
TF_OUTPUT_BUCKET = "artifact_store_bucket"
TF_OUTPUT_CLUSTER_ZONE = "cluster_zone"
TF_OUTPUT_SQL_NAME = "sql_name"
TF_OUTPUT_SQL_CONNECTION_NAME = "sql_connection_name"

# -- KFP deployment --
DEFAULT_PIPELINE_VERSION = dep_value("kfp", "version", default="0.2.2")
KFP_MANIFESTS_BASE_URL = dep_value(
    "kfp", "manifests_base_url", default="https://storage.googleapis.com/ml-pipeline/pipeline-lite")
KFP_CRD_MANIFEST = dep_value("kfp", "crd_manifest", default="crd.yaml")
KFP_INSTALL_MANIFEST = dep_value("kfp", "install_manifest", default="namespaced-install.yaml")
KFP_ESTABLISHED_CRD = dep_value("kfp", "established_crd", default="crd/applications.app.k8s.io")
DEFAULT_CRD_WAIT_TIMEOUT_SECONDS = 60

# -- Secrets --
USER_GCP_SA_SECRET = "user-gcp-sa"
USER_GCP_SA_KEY_FILE = "application_default_credentials.json"
USER_GCP_SA_ALIAS = "user-gcp-sa.json"
MYSQL_SECRET = "mysql-credential"
DEFAULT_SQL_USERNAME = "root"
GCP_CONFIGS_ENV = "gcp-configs.env"

# -- Completion --
INVERSE_PROXY_CONFIGMAP = "inverse-proxy-config"
KFP_UI_HOST_MARKER = "googleusercontent.com"
DEFAULT_SETTLE_SECONDS = 180
DEFAULT_ENDPOINT_POLL_INTERVAL_SECONDS = 10

# -- Working directories --
DEFAULT_TERRAFORM_DIR = "terraform"
DEFAULT_KUSTOMIZE_DIR = "kustomize"
DEFAULT_BUILD_CONTEXT = "."

# -- Deploy modes --
DEPLOY_MODE_LITE = "lite"
DEPLOY_MODE_KUSTOMIZE = "kustomize"

# -- Abort reporting --
COMMAND_NOT_FOUND_EXIT_CODE = 127
STDERR_TAIL_CHARS = 400
REDACTED = "****"
