"""Global constants and path configuration for esxi-vm-builder."""

from __future__ import annotations

import os
import re
from pathlib import Path

# Prefix of every environment variable the tool reads.
ENV_PREFIX = "ESXI_VM_BUILDER_"

PACKAGE_DIR = Path(__file__).resolve().parent
DEFAULT_TEMPLATES_DIR = Path(os.environ.get(ENV_PREFIX + "TEMPLATES_DIR", PACKAGE_DIR / "template_sets"))
# Parent of the per-run workspaces. Removed after a run when empty.
WORK_DIR = Path(os.environ.get(ENV_PREFIX + "WORK_DIR", "work"))

TEMPLATE_MANIFEST = "template.yaml"
WORKSPACE_PLACEHOLDER = "tmpFolder"

PACKER_BIN = os.environ.get(ENV_PREFIX + "PACKER_BIN", "packer")
SSH_PORT = 22
SSH_TIMEOUT = 30.0

# vim-cmd is the only management CLI available on a stock ESXi shell.
INVENTORY_COMMAND = "vim-cmd vmsvc/getallvms"
POWER_ON_COMMAND = "vim-cmd vmsvc/power.on {vmid}"

TRUTHY = {"1", "true", "yes", "on", "y"}

# Gigabytes as typed by the user -> megabytes expected by the packer disk_size.
DISK_SIZE_MULTIPLIER = 1000
INTEGER_RE = re.compile(r"^\d+$")
PROXY_RE = re.compile(r"^https?://", re.IGNORECASE)
# Login names accepted by the debian-installer user-setup step.
USERNAME_RE = re.compile(r"^[a-z_][a-z0-9_-]{0,31}$")
PLACEHOLDER_RE = re.compile(r"\$(\$)?\{([A-Za-z_][A-Za-z0-9_]*)\}")

LOG_VERBOSE_ENV = ENV_PREFIX + "LOG_VERBOSE"
_LOG_VERBOSE = os.environ.get(LOG_VERBOSE_ENV, "").lower() in TRUTHY

EXIT_USAGE = 255  # -1 as seen by the shell
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130
