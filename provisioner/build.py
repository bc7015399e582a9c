"""Packer invocation for esxi-vm-builder."""

from __future__ import annotations

import subprocess
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from provisioner.constants import PACKER_BIN
from provisioner.exceptions import BuildError
from provisioner.utils import log, run


class PackerBuilder:
    """Runs ``packer validate`` / ``packer build`` on a rendered definition.

    Both calls block until packer exits and inherit stdout/stderr, so the
    tool's own output is what the user sees. There is no retry: a half-built
    VM on the hypervisor is not safe to build again blindly.
    """

    def __init__(
        self,
        binary: Optional[str] = None,
        extra_args: Sequence[str] = (),
        secrets: Iterable[str] = (),
    ) -> None:
        self.binary = binary or PACKER_BIN
        self.extra_args = list(extra_args)
        self.secrets = [s for s in secrets if s]

    def _invoke(self, action: str, definition: Path) -> None:
        cmd: List[str] = [self.binary, action, *self.extra_args, definition.name]
        try:
            result = run(cmd, check=False, cwd=str(definition.parent), secrets=self.secrets)
        except FileNotFoundError:
            raise BuildError(f"Build tool not found: {self.binary} (set ESXI_VM_BUILDER_PACKER_BIN)", returncode=127)
        if result.returncode != 0:
            raise BuildError(
                f"packer {action} failed with exit status {result.returncode}",
                returncode=result.returncode,
            )

    def validate(self, definition: Path) -> None:
        log("INFO", f"Validating {definition.name}")
        self._invoke("validate", definition)

    def build(self, definition: Path) -> None:
        log("INFO", f"Building VM from {definition.name} (this can take a while)")
        self._invoke("build", definition)
        log("SUCCESS", "Build finished")

    def version(self) -> Optional[str]:
        try:
            result = run([self.binary, "version"], check=False, capture_output=True)
        except FileNotFoundError:
            return None
        except subprocess.SubprocessError as exc:
            log("DEBUG", f"packer version failed: {exc}")
            return None
        if result.returncode != 0:
            return None
        return result.stdout.strip().splitlines()[0] if result.stdout.strip() else None
