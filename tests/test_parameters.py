"""Tests for provisioner.parameters module."""

from provisioner.parameters import (
    PARAMETERS,
    PARAMETERS_BY_NAME,
    SENSITIVE_FIELDS,
    Parameter,
)


class TestParameter:
    def test_dest_from_flag(self):
        param = Parameter("vmRamSize", "--vm-ram-size", "ESXI_VM_BUILDER_VM_RAM_SIZE", "RAM")
        assert param.dest == "vm_ram_size"

    def test_defaults(self):
        param = Parameter("vmName", "--vm-name", "ESXI_VM_BUILDER_VM_NAME", "VM name")
        assert param.secret is False
        assert param.default is None
        assert param.required is True


class TestParameters:
    def test_all_flags_recognised(self):
        flags = {param.flag for param in PARAMETERS}
        assert flags == {
            "--esxi-server",
            "--esxi-username",
            "--esxi-password",
            "--esxi-datastore",
            "--vm-name",
            "--vm-cores",
            "--vm-ram-size",
            "--vm-disk-size",
            "--vm-network",
            "--os-type",
            "--os-proxy",
            "--os-username",
            "--os-password",
            "--os-domain",
            "--os-keyboard-layout",
            "--os-locale",
            "--os-timezone",
            "--os-install-docker",
        }

    def test_names_and_envs_unique(self):
        assert len({p.name for p in PARAMETERS}) == len(PARAMETERS)
        assert len({p.env for p in PARAMETERS}) == len(PARAMETERS)
        assert len(PARAMETERS_BY_NAME) == len(PARAMETERS)

    def test_env_names_are_prefixed(self):
        assert all(p.env.startswith("ESXI_VM_BUILDER_") for p in PARAMETERS)
        assert PARAMETERS_BY_NAME["osPassword"].env == "ESXI_VM_BUILDER_OS_PASSWORD"
        assert PARAMETERS_BY_NAME["vmRamSize"].env == "ESXI_VM_BUILDER_VM_RAM_SIZE"

    def test_secrets(self):
        assert SENSITIVE_FIELDS == {"esxi_password", "os_password"}

    def test_only_proxy_is_optional(self):
        assert [p.name for p in PARAMETERS if not p.required] == ["osProxy"]
