"""Custom exceptions for esxi-vm-builder."""


class ProvisionError(RuntimeError):
    """Raised on unrecoverable configuration or runtime errors."""


class ConfigError(ProvisionError):
    """A parameter could not be resolved or normalised."""


class TemplateError(ProvisionError):
    """A template set is missing or cannot be rendered completely."""


class BuildError(ProvisionError):
    """The external build tool failed."""

    def __init__(self, message: str, returncode: int = 1) -> None:
        super().__init__(message)
        self.returncode = returncode


class RemoteCommandError(ProvisionError):
    """A command on the hypervisor failed or the session could not be opened."""

    def __init__(self, message: str, exit_status: int = -1) -> None:
        super().__init__(message)
        self.exit_status = exit_status


class VMNotFoundError(ProvisionError):
    """No VM with the requested name exists in the hypervisor inventory."""


class ProvisionInterrupted(ProvisionError):
    """The run was interrupted by a termination signal."""

    def __init__(self, signum: int) -> None:
        super().__init__(f"Interrupted by signal {signum}")
        self.signum = signum
