"""Data models for esxi-vm-builder."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Dict, List, NamedTuple

from provisioner.parameters import PARAMETERS, SENSITIVE_FIELDS


class RemoteResult(NamedTuple):
    command: str
    exit_status: int
    stdout: str
    stderr: str


@dataclass(frozen=True)
class ProvisionConfig:
    esxi_server: str
    esxi_username: str
    esxi_password: str
    esxi_datastore: str
    vm_name: str
    vm_cores: str
    vm_ram_size: str
    vm_disk_size: str  # build-tool unit (MB), already converted
    vm_network: str
    os_type: str
    os_proxy: str
    os_username: str
    os_password: str
    os_domain: str
    os_keyboard_layout: str
    os_locale: str
    os_timezone: str
    os_install_docker: str

    def as_template_values(self) -> Dict[str, str]:
        """Map placeholder names to their rendered values."""
        return {param.name: getattr(self, param.dest) for param in PARAMETERS}

    def masked(self) -> Dict[str, str]:
        result: Dict[str, str] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            result[f.name] = "********" if f.name in SENSITIVE_FIELDS and value else value
        return result


@dataclass
class TemplateSet:
    os_type: str
    name: str
    path: Path
    definition: str
    description: str = ""
    files: List[str] = field(default_factory=list)

    @property
    def definition_path(self) -> Path:
        return self.path / self.definition
