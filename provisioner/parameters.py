"""The fixed set of parameters a provisioning run resolves."""

from __future__ import annotations

from typing import NamedTuple, Optional

from provisioner.constants import ENV_PREFIX


class Parameter(NamedTuple):
    name: str  # placeholder name, e.g. "vmCores"
    flag: str
    env: str
    prompt: str
    secret: bool = False
    default: Optional[str] = None
    required: bool = True

    @property
    def dest(self) -> str:
        """argparse destination for the flag (``--vm-cores`` -> ``vm_cores``)."""
        return self.flag.lstrip("-").replace("-", "_")


def _param(name: str, flag: str, prompt: str, **kwargs) -> Parameter:
    # --vm-cores -> ESXI_VM_BUILDER_VM_CORES
    env = ENV_PREFIX + flag.lstrip("-").replace("-", "_").upper()
    return Parameter(name, flag, env, prompt, **kwargs)


PARAMETERS = (
    _param("esxiServer", "--esxi-server", "ESXi server"),
    _param("esxiUsername", "--esxi-username", "ESXi username", default="root"),
    _param("esxiPassword", "--esxi-password", "ESXi password", secret=True),
    _param("esxiDatastore", "--esxi-datastore", "ESXi datastore", default="datastore1"),
    _param("vmName", "--vm-name", "VM name"),
    _param("vmCores", "--vm-cores", "VM CPU cores", default="2"),
    _param("vmRamSize", "--vm-ram-size", "VM RAM size (MB)", default="2048"),
    _param("vmDiskSize", "--vm-disk-size", "VM disk size (GB)", default="20"),
    _param("vmNetwork", "--vm-network", "VM network", default="VM Network"),
    _param("osType", "--os-type", "OS type", default="ubuntu-trusty"),
    _param("osProxy", "--os-proxy", "OS proxy (http://host:port/, empty for none)", required=False),
    _param("osUsername", "--os-username", "OS username"),
    _param("osPassword", "--os-password", "OS password", secret=True),
    _param("osDomain", "--os-domain", "OS domain", default="localdomain"),
    _param("osKeyboardLayout", "--os-keyboard-layout", "OS keyboard layout", default="us"),
    _param("osLocale", "--os-locale", "OS locale", default="en_US.UTF-8"),
    _param("osTimezone", "--os-timezone", "OS timezone", default="UTC"),
    _param("osInstallDocker", "--os-install-docker", "Install docker (yes/no)", default="no"),
)

PARAMETERS_BY_NAME = {param.name: param for param in PARAMETERS}

SENSITIVE_FIELDS = {param.dest for param in PARAMETERS if param.secret}
