"""Utility functions for esxi-vm-builder."""

from __future__ import annotations

import os
import subprocess
import sys
import time
from pathlib import Path
from typing import Iterable, List, Optional

from provisioner.constants import (
    _LOG_VERBOSE,
    DISK_SIZE_MULTIPLIER,
    INTEGER_RE,
    PROXY_RE,
    TRUTHY,
    USERNAME_RE,
)
from provisioner.exceptions import ConfigError

_verbose = _LOG_VERBOSE


def set_verbose(enabled: bool) -> None:
    global _verbose
    _verbose = enabled


def log(level: str, message: str) -> None:
    """Timestamped, colour-coded log line on stdout."""
    if level == "DEBUG" and not _verbose:
        return
    colours = {
        "INFO": "\033[0;34m",
        "WARN": "\033[1;33m",
        "ERROR": "\033[0;31m",
        "SUCCESS": "\033[0;32m",
        "DEBUG": "\033[0;90m",
    }
    colour = colours.get(level, "")
    reset = "\033[0m" if colour else ""
    stamp = time.strftime("%Y-%m-%d %H:%M:%S")
    print(f"{stamp} {colour}[{level}]{reset} {message}", flush=True)


def get_env(name: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(name, default)


def get_env_bool(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.lower() in TRUTHY


def has_controlling_tty() -> bool:
    """Return True if both stdin and stdout are attached to a TTY."""
    for stream in (sys.stdin, sys.stdout):
        try:
            if not stream.isatty():
                return False
        except (AttributeError, ValueError):
            return False
    return True


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def normalize_proxy(raw: str) -> str:
    """Keep HTTP(S) proxy URLs, blank anything else."""
    value = raw.strip()
    if not value:
        return ""
    if not PROXY_RE.match(value):
        log("WARN", f"Ignoring proxy '{value}': only http:// or https:// URLs are supported")
        return ""
    return value


def convert_disk_size(raw: str) -> str:
    """Convert a disk size in GB to the build tool's MB unit ('10' -> '10000')."""
    value = raw.strip()
    if not INTEGER_RE.match(value):
        raise ConfigError(f"Invalid disk size '{raw}'. Use a whole number of gigabytes (e.g. '20')")
    return str(int(value) * DISK_SIZE_MULTIPLIER)


def validate_count(raw: str, label: str) -> str:
    """Check a positive whole number, e.g. CPU cores or RAM in MB."""
    value = raw.strip()
    if not INTEGER_RE.match(value) or int(value) == 0:
        raise ConfigError(f"Invalid {label} '{raw}'. Use a positive whole number")
    return str(int(value))


def validate_username(raw: str) -> str:
    value = raw.strip()
    if not USERNAME_RE.match(value):
        raise ConfigError(
            f"Invalid OS username '{raw}'. Use lowercase letters, digits, '-' or '_', starting with a letter"
        )
    return value


def normalize_bool(raw: str) -> str:
    return "true" if raw.strip().lower() in TRUTHY else "false"


def mask_secrets(text: str, secrets: Iterable[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, "********")
    return text


def run(
    cmd: List[str], check: bool = True, secrets: Iterable[str] = (), **kwargs
) -> subprocess.CompletedProcess:
    """Run command with logging."""
    log("DEBUG", f"Running: {mask_secrets(' '.join(cmd), secrets)}")
    result = subprocess.run(cmd, check=check, text=True, **kwargs)
    return result
