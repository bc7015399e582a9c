"""esxi-vm-builder package."""

__all__ = [
    "build",
    "cli",
    "config",
    "constants",
    "exceptions",
    "models",
    "parameters",
    "remote",
    "templates",
    "utils",
    "workspace",
]
