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

"""Settle wait and KFP UI URL lookup."""

from __future__ import annotations

import re
import time

import sh
from rich.panel import Panel
from tenacity import retry, retry_if_result, stop_after_attempt, wait_fixed

from mlops_env import console, logger, tools
from mlops_env.config import InstallConfig
from mlops_env.constants import INVERSE_PROXY_CONFIGMAP, KFP_UI_HOST_MARKER

_UI_HOST_RE = re.compile(r"[\w.-]*" + re.escape(KFP_UI_HOST_MARKER))


def extract_ui_host(description: str) -> str:
    """Return the first ``*.googleusercontent.com`` hostname in *description*, or ``""``."""
    match = _UI_HOST_RE.search(description)
    return match.group(0) if match else ""


def lookup_ui_host(namespace: str) -> str:
    description = tools.kubectl("describe", "configmap", INVERSE_PROXY_CONFIGMAP, "-n", namespace)
    return extract_ui_host(description)


def _poll_ui_host(namespace: str, cfg: InstallConfig) -> str:
    """Look the hostname up again until it appears or attempts run out."""

    @retry(
        stop=stop_after_attempt(cfg.endpoint_poll_attempts),
        wait=wait_fixed(cfg.endpoint_poll_interval),
        retry=retry_if_result(lambda host: not host),
        retry_error_callback=lambda state: "",
    )
    def _attempt() -> str:
        try:
            return lookup_ui_host(namespace)
        except sh.ErrorReturnCode as err:
            logger.debug("Config map lookup failed (exit %s), retrying", err.exit_code)
            return ""

    return _attempt()


def wait_for_ui(namespace: str, cfg: InstallConfig) -> str:
    """Give KFP time to start, then return its UI URL.

    Sleeps ``cfg.settle_seconds`` unconditionally. When the hostname is not
    yet published and ``cfg.endpoint_poll_attempts`` is positive, polls for
    it a bounded number of times; with polling enabled a config map that
    cannot be read yet counts as "not yet published". A hostname that never appears yields an
    empty string rather than an error.

    Args:
        namespace: Namespace KFP was installed into.
        cfg: Installer settings with settle and polling values.

    Returns:
        ``https://<host>``, or ``""`` if no hostname was found.
    """
    console.print(Panel.fit("Waiting for KFP services", style="bold blue"))
    console.print(f"[yellow]\u2139\ufe0f  Sleeping for {cfg.settle_seconds} seconds to allow for KFP services to start[/yellow]")
    time.sleep(cfg.settle_seconds)

    if cfg.endpoint_poll_attempts > 0:
        try:
            host = lookup_ui_host(namespace)
        except sh.ErrorReturnCode as err:
            logger.debug("Config map not readable yet (exit %s), polling", err.exit_code)
            host = ""
        if not host:
            host = _poll_ui_host(namespace, cfg)
    else:
        host = lookup_ui_host(namespace)
    if not host:
        console.print(f"[yellow]\u26a0\ufe0f  {INVERSE_PROXY_CONFIGMAP} does not publish a hostname yet[/yellow]")
        return ""
    return f"https://{host}"
