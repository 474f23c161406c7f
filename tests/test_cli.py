"""End-to-end tests of the install command with every external tool faked."""

from __future__ import annotations

import json

import pytest
from typer.testing import CliRunner

from mlops_env.cli import app
from tests.conftest import TF_OUTPUTS, UI_HOST

INFRA_VALUES = [entry["value"] for entry in TF_OUTPUTS.values()]


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture()
def env(cfg) -> dict[str, str]:
    return {
        "MLOPS_TERRAFORM_DIR": str(cfg.terraform_dir),
        "MLOPS_KUSTOMIZE_DIR": str(cfg.kustomize_dir),
        "MLOPS_SETTLE_SECONDS": "0",
        "NO_COLOR": "1",
    }


@pytest.mark.parametrize("args", [[], ["proj1"]])
def test_too_few_arguments_prints_usage_and_makes_no_calls(runner, fake_tools, args):
    result = runner.invoke(app, args)

    assert result.exit_code != 0
    assert "USAGE:" in result.output
    assert fake_tools.calls == []


def test_full_run_succeeds_and_prints_url(runner, fake_tools, no_sleep, env):
    result = runner.invoke(app, ["proj1", "pw1"], env=env)

    assert result.exit_code == 0, result.output
    assert f"https://{UI_HOST}" in result.output
    lines = fake_tools.lines()
    assert lines[0] == "gcloud config set project proj1"
    assert "gcloud compute instances create proj1-notebook" in " | ".join(lines)
    assert lines[-1] == "kubectl describe configmap inverse-proxy-config -n kubeflow"


def test_custom_prefix_and_region_flow_into_commands(runner, fake_tools, no_sleep, env):
    result = runner.invoke(app, ["proj1", "pw1", "team-a", "us-east1"], env=env)

    assert result.exit_code == 0, result.output
    (listing,) = fake_tools.matching("gcloud compute instances list")
    assert "--filter=name=team-a-notebook" in listing.args
    assert "us-central1-a" in listing.args
    (apply_call,) = fake_tools.matching("terraform apply")
    assert "region=us-east1" in apply_call.args
    assert "name_prefix=team-a" in apply_call.args
    assert fake_tools.matching("kubectl create namespace kubeflow")


def test_existing_instance_is_skipped_and_run_succeeds(runner, fake_tools, no_sleep, env):
    fake_tools.on("gcloud compute instances list", output="proj1-notebook\n")

    result = runner.invoke(app, ["proj1", "pw1"], env=env)

    assert result.exit_code == 0, result.output
    assert not fake_tools.matching("gcloud builds submit")
    assert not fake_tools.matching("gcloud compute instances create")


def test_skip_instance_flag(runner, fake_tools, no_sleep, env):
    result = runner.invoke(app, ["proj1", "pw1", "--skip-instance"], env=env)

    assert result.exit_code == 0, result.output
    assert not fake_tools.matching("gcloud compute instances")


@pytest.mark.parametrize(
    ("failing", "status", "never_runs"),
    [
        ("gcloud services enable", 2, "gcloud compute instances list"),
        ("gcloud builds submit", 3, "gcloud compute instances create"),
        ("terraform apply", 4, "gcloud container clusters get-credentials"),
        ("kubectl create namespace", 5, "gcloud iam service-accounts keys create"),
        ("kubectl wait", 6, "kubectl describe configmap"),
    ],
)
def test_failing_step_exits_with_its_status(runner, fake_tools, no_sleep, env, failing, status, never_runs):
    fake_tools.on(failing, exit_code=status)

    result = runner.invoke(app, ["proj1", "pw1"], env=env)

    assert result.exit_code == status
    assert "Aborting..." in result.output
    assert "That returned exit status" in result.output
    assert not fake_tools.matching(never_runs)
    assert fake_tools.lines()[-1].startswith(failing)


def test_infra_outputs_not_referenced_before_apply(runner, fake_tools, no_sleep, env):
    result = runner.invoke(app, ["proj1", "pw1"], env=env)

    assert result.exit_code == 0, result.output
    applied = fake_tools.index("terraform apply")
    for call in fake_tools.calls[:applied + 1]:
        assert not any(value in call.line for value in INFRA_VALUES), call.line


def test_missing_terraform_output_exits_1(runner, fake_tools, no_sleep, env):
    partial = {k: v for k, v in TF_OUTPUTS.items() if k != "cluster_name"}
    fake_tools.on("terraform output -json", output=json.dumps(partial))

    result = runner.invoke(app, ["proj1", "pw1"], env=env)

    assert result.exit_code == 1
    assert "cluster_name" in result.output
    assert not fake_tools.matching("gcloud container clusters get-credentials")


def test_unknown_deploy_mode_is_rejected(runner, fake_tools, env):
    result = runner.invoke(app, ["proj1", "pw1", "--deploy-mode", "helm"], env=env)

    assert result.exit_code != 0
    assert fake_tools.calls == []


def test_sql_password_is_redacted_on_failure(runner, fake_tools, no_sleep, env):
    outputs = dict(TF_OUTPUTS)
    outputs["sql_name"] = {"value": "proj1-metadata"}
    outputs["sql_connection_name"] = {"value": "proj1:us-central1:proj1-metadata"}
    fake_tools.on("terraform output -json", output=json.dumps(outputs))
    fake_tools.on("gcloud sql users create", exit_code=1)

    result = runner.invoke(app, ["proj1", "hunter2", "--deploy-mode", "kustomize"], env=env)

    assert result.exit_code == 1
    assert "hunter2" not in result.output


def test_kustomize_mode_without_sql_outputs_stops_before_cluster_work(runner, fake_tools, no_sleep, env):
    result = runner.invoke(app, ["proj1", "pw1", "--deploy-mode", "kustomize"], env=env)

    assert result.exit_code == 1
    assert "sql_name" in result.output
    assert not fake_tools.matching("gcloud container clusters get-credentials")
    assert not fake_tools.matching("kubectl create namespace")
    assert not fake_tools.matching("gcloud iam service-accounts keys create")


def test_too_many_arguments_prints_usage_and_makes_no_calls(runner, fake_tools):
    result = runner.invoke(app, ["proj1", "pw1", "p", "r", "z", "ns", "extra"])

    assert result.exit_code == 1
    assert "USAGE:" in result.output
    assert "got 7" in result.output
    assert fake_tools.calls == []
