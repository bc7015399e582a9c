"""Shared test fixtures for esxi-vm-builder."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List

import pytest

from provisioner.constants import LOG_VERBOSE_ENV
from provisioner.models import ProvisionConfig
from provisioner.parameters import PARAMETERS

CLI_VALUES = {
    "esxi_server": "esxi.example.com",
    "esxi_username": "root",
    "esxi_password": "esxi-secret",
    "esxi_datastore": "datastore1",
    "vm_name": "my-vm",
    "vm_cores": "4",
    "vm_ram_size": "4096",
    "vm_disk_size": "10",
    "vm_network": "VM Network",
    "os_type": "ubuntu-trusty",
    "os_proxy": "http://10.0.0.1:3128/",
    "os_username": "ubuntu",
    "os_password": "guest-secret",
    "os_domain": "example.com",
    "os_keyboard_layout": "us",
    "os_locale": "en_US.UTF-8",
    "os_timezone": "UTC",
    "os_install_docker": "yes",
}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Clear every environment variable the resolver and logger read."""
    for param in PARAMETERS:
        monkeypatch.delenv(param.env, raising=False)
    monkeypatch.delenv(LOG_VERBOSE_ENV, raising=False)


@pytest.fixture
def cli_values() -> Dict[str, str]:
    return dict(CLI_VALUES)


@pytest.fixture
def default_config() -> ProvisionConfig:
    """Resolved configuration matching CLI_VALUES (disk already in MB)."""
    values = dict(CLI_VALUES)
    values["vm_disk_size"] = "10000"
    values["os_install_docker"] = "true"
    return ProvisionConfig(**values)


@pytest.fixture
def make_argv():
    """Turn a dest->value mapping into command-line flags."""
    by_dest = {param.dest: param for param in PARAMETERS}

    def _make(values: Dict[str, str]) -> List[str]:
        argv: List[str] = []
        for dest, value in values.items():
            argv.extend([by_dest[dest].flag, value])
        return argv

    return _make


@pytest.fixture
def templates_dir(tmp_path) -> Path:
    """A template tree with one small 'ubuntu-trusty' set."""
    root = tmp_path / "templates"
    ts = root / "ubuntu-trusty"
    (ts / "http").mkdir(parents=True)
    (ts / "template.yaml").write_text("name: Test Trusty\ndefinition: machine.json\n")
    (ts / "machine.json").write_text(
        '{"vm_name": "${vmName}", "disk_size": ${vmDiskSize}, "http_directory": "${tmpFolder}/http"}\n'
    )
    (ts / "settings.txt").write_text("Cores=${vmCores}\nProxy=${osProxy}\n")
    (ts / "http" / "answers.cfg").write_text("d-i passwd/username string ${osUsername}\n")
    return root
