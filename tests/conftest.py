"""Shared fixtures: a recording stand-in for the external CLIs."""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

import pytest
import sh

from mlops_env import tools
from mlops_env.config import InstallConfig, RunParameters, resolve_parameters

TF_OUTPUTS = {
    "cluster_name": {"sensitive": False, "type": "string", "value": "proj1-cluster"},
    "kfp_sa_email": {"sensitive": False, "type": "string", "value": "proj1-kfp-sa@proj1.iam.gserviceaccount.com"},
    "artifact_store_bucket": {"sensitive": False, "type": "string", "value": "proj1-artifact-store"},
    "cluster_zone": {"sensitive": False, "type": "string", "value": "us-central1-b"},
}

UI_HOST = "1a2b3c4d-dot-us-central1.pipelines.googleusercontent.com"
CONFIGMAP_DESCRIPTION = f"""Name:         inverse-proxy-config
Namespace:    kubeflow
Data
====
Hostname:
----
{UI_HOST}
"""


@dataclass
class Call:
    tool: str
    args: tuple[str, ...]
    cwd: Path | None = None
    stdin: str | None = None

    @property
    def line(self) -> str:
        return " ".join((self.tool, *self.args))


@dataclass
class Rule:
    prefix: str
    output: str = ""
    exit_code: int = 0
    action: Callable[[Call], None] | None = None
    sequence: list[str | int] | None = None

    def respond(self, call: Call) -> str:
        if self.action is not None:
            self.action(call)
        exit_code, output = self.exit_code, self.output
        if self.sequence:
            # The last entry repeats once the sequence is exhausted.
            item = self.sequence.pop(0) if len(self.sequence) > 1 else self.sequence[0]
            exit_code, output = (item, "") if isinstance(item, int) else (0, item)
        if exit_code:
            exc = getattr(sh, f"ErrorReturnCode_{exit_code}")
            raise exc(call.line, b"", b"simulated failure")
        return output


@dataclass
class FakeTools:
    """Records every external command and answers from prefix-matched rules."""

    calls: list[Call] = field(default_factory=list)
    rules: list[Rule] = field(default_factory=list)

    def on(self, prefix: str, output: str = "", exit_code: int = 0,
           action: Callable[[Call], None] | None = None,
           sequence: list[str | int] | None = None) -> None:
        # Later rules win so tests can override the defaults.
        self.rules.insert(0, Rule(prefix, output, exit_code, action, sequence))

    def __call__(self, tool: str, args: tuple[str, ...], cwd: Path | None = None,
                 stdin: str | None = None) -> str:
        call = Call(tool, tuple(args), cwd, stdin)
        self.calls.append(call)
        for rule in self.rules:
            if call.line.startswith(rule.prefix):
                return rule.respond(call)
        return ""

    def lines(self) -> list[str]:
        return [call.line for call in self.calls]

    def matching(self, prefix: str) -> list[Call]:
        return [call for call in self.calls if call.line.startswith(prefix)]

    def index(self, prefix: str) -> int:
        for i, call in enumerate(self.calls):
            if call.line.startswith(prefix):
                return i
        raise AssertionError(f"no call starting with {prefix!r} in {self.lines()}")


@pytest.fixture()
def fake_tools(monkeypatch: pytest.MonkeyPatch) -> FakeTools:
    fake = FakeTools()
    fake.on("gcloud projects describe", output="123456789\n")
    fake.on("terraform output -json", output=json.dumps(TF_OUTPUTS))
    fake.on("kubectl describe configmap inverse-proxy-config", output=CONFIGMAP_DESCRIPTION)
    monkeypatch.setattr(tools, "_execute", fake)
    monkeypatch.setattr(tools, "require_command", lambda cmd: None)
    return fake


@pytest.fixture()
def no_sleep(monkeypatch: pytest.MonkeyPatch) -> list[float]:
    slept: list[float] = []
    monkeypatch.setattr("mlops_env.waiter.time.sleep", slept.append)
    return slept


@pytest.fixture()
def params() -> RunParameters:
    return resolve_parameters(["proj1", "pw1"])


@pytest.fixture()
def cfg(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> InstallConfig:
    for name in ("MLOPS_DEPLOY_MODE", "MLOPS_SETTLE_SECONDS", "MLOPS_TERRAFORM_DIR", "MLOPS_KUSTOMIZE_DIR"):
        monkeypatch.delenv(name, raising=False)
    kustomize_dir = tmp_path / "kustomize"
    kustomize_dir.mkdir()
    return InstallConfig(
        terraform_dir=tmp_path / "terraform",
        kustomize_dir=kustomize_dir,
        settle_seconds=0,
    )
