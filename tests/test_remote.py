"""Tests for provisioner.remote module."""

from __future__ import annotations

import socket
from unittest.mock import MagicMock, patch

import paramiko
import pytest

from provisioner.exceptions import RemoteCommandError, VMNotFoundError
from provisioner.models import RemoteResult
from provisioner.remote import PowerController, RemoteSession, parse_vm_inventory

GETALLVMS = """\
Vmid       Name                          File                         Guest OS       Version   Annotation
1      my-vm          [datastore1] my-vm/my-vm.vmx                    ubuntu64Guest   vmx-08
12     build box      [datastore1] build box/build box.vmx            ubuntu64Guest   vmx-11    nightly
3      my-vm-old      [datastore2] my-vm-old/my-vm-old.vmx            ubuntu64Guest   vmx-08
"""


def _fake_session(stdout: str) -> MagicMock:
    session = MagicMock(spec=RemoteSession)
    session.host = "esxi.example.com"
    session.run.return_value = RemoteResult(command="", exit_status=0, stdout=stdout, stderr="")
    return session


def _exec_result(out: bytes = b"", err: bytes = b"", status: int = 0):
    stdout = MagicMock()
    stdout.read.return_value = out
    stdout.channel.recv_exit_status.return_value = status
    stderr = MagicMock()
    stderr.read.return_value = err
    return MagicMock(), stdout, stderr


class TestParseInventory:
    def test_minimal_lines(self):
        assert parse_vm_inventory("1 my-vm\n2 other-vm\n") == [("1", "my-vm"), ("2", "other-vm")]

    def test_real_output_with_header_and_spaces(self):
        assert parse_vm_inventory(GETALLVMS) == [
            ("1", "my-vm"),
            ("12", "build box"),
            ("3", "my-vm-old"),
        ]

    def test_blank_lines_ignored(self):
        assert parse_vm_inventory("\n\n") == []

    def test_annotation_continuation_lines_skipped(self):
        output = (
            "Vmid   Name    File                       Guest OS        Version   Annotation\n"
            "7      web01   [datastore1] web01/web01.vmx   ubuntu64Guest   vmx-11    Owner: ops\n"
            "Rebuilt weekly [see wiki]\n"
            "contact team-a\n"
            "8      db01    [datastore1] db01/db01.vmx     ubuntu64Guest   vmx-11\n"
        )
        assert parse_vm_inventory(output) == [("7", "web01"), ("8", "db01")]


class TestPowerController:
    def test_lookup_resolves_identifier(self):
        session = _fake_session("1 my-vm\n2 other-vm\n")
        assert PowerController(session).find_vm_id("my-vm") == "1"
        session.run.assert_called_once_with("vim-cmd vmsvc/getallvms")

    def test_exact_name_match_only(self):
        session = _fake_session(GETALLVMS)
        assert PowerController(session).find_vm_id("my-vm-old") == "3"
        assert PowerController(session).find_vm_id("build box") == "12"

    def test_vm_not_found_skips_power_on(self):
        session = _fake_session("2 other-vm\n")
        with pytest.raises(VMNotFoundError, match="No VM named 'my-vm'"):
            PowerController(session).power_on_by_name("my-vm")
        assert session.run.call_count == 1

    def test_power_on_by_name(self):
        session = _fake_session("1 my-vm\n2 other-vm\n")
        assert PowerController(session).power_on_by_name("my-vm") == "1"
        assert session.run.call_args_list[-1][0][0] == "vim-cmd vmsvc/power.on 1"


class TestRemoteSession:
    def test_connect_uses_password_and_skips_host_keys(self):
        with patch("provisioner.remote.paramiko.SSHClient") as mock_client_cls:
            client = mock_client_cls.return_value
            session = RemoteSession("esxi.example.com", "root", "pw", port=2222)
            session.connect()
        policy = client.set_missing_host_key_policy.call_args[0][0]
        assert isinstance(policy, paramiko.AutoAddPolicy)
        client.connect.assert_called_once_with(
            "esxi.example.com",
            port=2222,
            username="root",
            password="pw",
            timeout=session.timeout,
            look_for_keys=False,
            allow_agent=False,
        )

    def test_authentication_failure(self):
        with patch("provisioner.remote.paramiko.SSHClient") as mock_client_cls:
            client = mock_client_cls.return_value
            client.connect.side_effect = paramiko.AuthenticationException("denied")
            with pytest.raises(RemoteCommandError, match="Authentication failed for root@esxi"):
                RemoteSession("esxi", "root", "bad").connect()
        client.close.assert_called_once()

    def test_unreachable_host(self):
        with patch("provisioner.remote.paramiko.SSHClient") as mock_client_cls:
            mock_client_cls.return_value.connect.side_effect = socket.timeout("timed out")
            with pytest.raises(RemoteCommandError, match="Cannot connect to esxi:22"):
                RemoteSession("esxi", "root", "pw").connect()

    def test_run_returns_output(self):
        with patch("provisioner.remote.paramiko.SSHClient") as mock_client_cls:
            client = mock_client_cls.return_value
            client.exec_command.return_value = _exec_result(out=b"1 my-vm\n")
            with RemoteSession("esxi", "root", "pw") as session:
                result = session.run("vim-cmd vmsvc/getallvms")
        assert result.stdout == "1 my-vm\n"
        assert result.exit_status == 0
        client.close.assert_called_once()

    def test_run_non_zero_exit_raises(self):
        with patch("provisioner.remote.paramiko.SSHClient") as mock_client_cls:
            client = mock_client_cls.return_value
            client.exec_command.return_value = _exec_result(err=b"vim-cmd: not found", status=127)
            with RemoteSession("esxi", "root", "pw") as session:
                with pytest.raises(RemoteCommandError, match="vim-cmd: not found") as exc:
                    session.run("vim-cmd vmsvc/getallvms")
        assert exc.value.exit_status == 127

    def test_run_without_connect(self):
        with pytest.raises(RemoteCommandError, match="not connected"):
            RemoteSession("esxi", "root", "pw").run("true")
