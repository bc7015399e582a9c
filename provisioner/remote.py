"""SSH session to the ESXi host and VM power control."""

from __future__ import annotations

import shlex
import socket
from typing import List, Optional, Tuple

try:
    import paramiko  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("paramiko is required but not installed") from exc

from provisioner.constants import (
    INVENTORY_COMMAND,
    POWER_ON_COMMAND,
    SSH_PORT,
    SSH_TIMEOUT,
)
from provisioner.exceptions import RemoteCommandError, VMNotFoundError
from provisioner.models import RemoteResult
from provisioner.utils import log


class RemoteSession:
    """Password-authenticated SSH session with host-key checking disabled."""

    def __init__(
        self,
        host: str,
        username: str,
        password: str,
        port: int = SSH_PORT,
        timeout: float = SSH_TIMEOUT,
    ) -> None:
        self.host = host
        self.username = username
        self.password = password
        self.port = port
        self.timeout = timeout
        self.client: Optional[paramiko.SSHClient] = None

    def connect(self) -> None:
        client = paramiko.SSHClient()
        client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
        log("INFO", f"Connecting to {self.username}@{self.host}:{self.port}")
        try:
            client.connect(
                self.host,
                port=self.port,
                username=self.username,
                password=self.password,
                timeout=self.timeout,
                look_for_keys=False,
                allow_agent=False,
            )
        except paramiko.AuthenticationException as exc:
            client.close()
            raise RemoteCommandError(f"Authentication failed for {self.username}@{self.host}: {exc}")
        except (paramiko.SSHException, socket.error) as exc:
            client.close()
            raise RemoteCommandError(f"Cannot connect to {self.host}:{self.port}: {exc}")
        self.client = client

    def close(self) -> None:
        if self.client is not None:
            self.client.close()
            self.client = None

    def __enter__(self) -> "RemoteSession":
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def run(self, command: str) -> RemoteResult:
        if self.client is None:
            raise RemoteCommandError("SSH session is not connected")
        log("DEBUG", f"[{self.host}]$ {command}")
        try:
            _stdin, stdout, stderr = self.client.exec_command(command)
            out = stdout.read().decode(errors="replace")
            err = stderr.read().decode(errors="replace")
            exit_status = stdout.channel.recv_exit_status()
        except (paramiko.SSHException, socket.error) as exc:
            raise RemoteCommandError(f"Command failed on {self.host}: {command}: {exc}")
        if exit_status != 0:
            detail = err.strip() or out.strip()
            raise RemoteCommandError(
                f"Command failed on {self.host} ({exit_status}): {command}\n{detail}".rstrip(),
                exit_status=exit_status,
            )
        return RemoteResult(command=command, exit_status=exit_status, stdout=out, stderr=err)


def parse_vm_inventory(output: str) -> List[Tuple[str, str]]:
    """Parse ``vim-cmd vmsvc/getallvms`` output into (vmid, name) pairs.

    Columns are Vmid, Name, File, Guest OS, Version, Annotation. Names may
    contain spaces; the name ends where the ``[datastore] path`` column starts.
    The header and continuation lines of multi-line annotations do not start
    with a numeric id and are skipped.
    """
    records: List[Tuple[str, str]] = []
    for line in output.splitlines():
        parts = line.strip().split(None, 1)
        if len(parts) < 2 or not parts[0].isdigit():
            continue
        vmid, rest = parts
        if " [" in rest:
            name = rest.split(" [", 1)[0].strip()
        else:
            name = rest.split()[0]
        records.append((vmid, name))
    return records


class PowerController:
    def __init__(self, session: RemoteSession) -> None:
        self.session = session

    def find_vm_id(self, vm_name: str) -> str:
        result = self.session.run(INVENTORY_COMMAND)
        for vmid, name in parse_vm_inventory(result.stdout):
            if name == vm_name:
                log("INFO", f"Found VM '{vm_name}' with id {vmid}")
                return vmid
        raise VMNotFoundError(f"No VM named '{vm_name}' found on {self.session.host}")

    def power_on(self, vmid: str) -> None:
        self.session.run(POWER_ON_COMMAND.format(vmid=shlex.quote(vmid)))
        log("SUCCESS", f"Powered on VM {vmid}")

    def power_on_by_name(self, vm_name: str) -> str:
        vmid = self.find_vm_id(vm_name)
        self.power_on(vmid)
        return vmid
