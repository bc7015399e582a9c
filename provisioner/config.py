"""Parameter resolution for esxi-vm-builder.

Every recognised parameter is looked up in a chain of value sources (CLI
flags, environment, YAML config file, interactive prompt). The first source
that knows a value wins; later sources, the prompt in particular, are never
consulted for it. The result is an immutable :class:`ProvisionConfig`.
"""

from __future__ import annotations

import getpass
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from provisioner.exceptions import ConfigError
from provisioner.models import ProvisionConfig
from provisioner.parameters import PARAMETERS, Parameter
from provisioner.utils import (
    convert_disk_size,
    get_env,
    has_controlling_tty,
    log,
    normalize_bool,
    normalize_proxy,
    validate_count,
    validate_username,
)

ValueSource = Callable[[Parameter], Optional[str]]


def cli_source(cli_values: Mapping[str, Optional[str]]) -> ValueSource:
    """Values given on the command line, keyed by argparse dest."""

    def _lookup(param: Parameter) -> Optional[str]:
        return cli_values.get(param.dest)

    return _lookup


def env_source() -> ValueSource:
    def _lookup(param: Parameter) -> Optional[str]:
        return get_env(param.env)

    return _lookup


def load_config_file(path: Path) -> Dict[str, object]:
    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text())
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file {path} contains invalid YAML: {exc}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def file_source(data: Mapping[str, object]) -> ValueSource:
    """Values from a YAML mapping keyed by placeholder name or flag name."""

    def _lookup(param: Parameter) -> Optional[str]:
        for key in (param.name, param.flag.lstrip("-"), param.dest):
            if key in data and data[key] is not None:
                value = data[key]
                if isinstance(value, bool):
                    return "true" if value else "false"
                return str(value)
        return None

    return _lookup


def prompt_source(
    input_fn: Callable[[str], str] = input,
    getpass_fn: Callable[[str], str] = getpass.getpass,
) -> ValueSource:
    """Ask on the terminal, masking secrets. Re-asks until a required value is given."""

    def _lookup(param: Parameter) -> Optional[str]:
        suffix = f" [{param.default}]" if param.default is not None else ""
        text = f"{param.prompt}{suffix}: "
        while True:
            answer = (getpass_fn(text) if param.secret else input_fn(text)).strip()
            if not answer and param.default is not None:
                return param.default
            if answer or not param.required:
                return answer
            log("WARN", f"{param.prompt} must not be empty")

    return _lookup


def default_source() -> ValueSource:
    def _lookup(param: Parameter) -> Optional[str]:
        return param.default

    return _lookup


def _lookup_value(param: Parameter, sources: Sequence[ValueSource]) -> Optional[str]:
    for source in sources:
        value = source(param)
        if value is None:
            continue
        if param.required and not value.strip():
            # An empty value does not satisfy a required parameter; keep looking.
            continue
        return value
    return None


def resolve_values(sources: Sequence[ValueSource]) -> Dict[str, str]:
    """Resolve raw values for every parameter, keyed by placeholder name."""
    values: Dict[str, str] = {}
    missing: List[Parameter] = []
    for param in PARAMETERS:
        value = _lookup_value(param, sources)
        if value is None:
            if param.required:
                missing.append(param)
                continue
            value = ""
        values[param.name] = value
    if missing:
        details = "\n".join(f"    {p.flag} (or {p.env})" for p in missing)
        raise ConfigError(f"Missing required parameters:\n{details}")
    return values


def normalize_values(values: Mapping[str, str]) -> ProvisionConfig:
    normalized = {name: value.strip() for name, value in values.items()}
    normalized["osProxy"] = normalize_proxy(normalized.get("osProxy", ""))
    normalized["vmCores"] = validate_count(normalized["vmCores"], "CPU core count")
    normalized["vmRamSize"] = validate_count(normalized["vmRamSize"], "RAM size")
    normalized["vmDiskSize"] = convert_disk_size(normalized["vmDiskSize"])
    normalized["osInstallDocker"] = normalize_bool(normalized["osInstallDocker"])
    normalized["osUsername"] = validate_username(normalized["osUsername"])
    return ProvisionConfig(**{param.dest: normalized[param.name] for param in PARAMETERS})


def resolve_config(
    cli_values: Mapping[str, Optional[str]],
    config_path: Optional[Path] = None,
    interactive: Optional[bool] = None,
    prompt: Optional[ValueSource] = None,
) -> ProvisionConfig:
    sources: List[ValueSource] = [cli_source(cli_values), env_source()]
    if config_path is not None:
        sources.append(file_source(load_config_file(config_path)))
    if interactive is None:
        interactive = has_controlling_tty()
    if interactive:
        sources.append(prompt or prompt_source())
    else:
        log("DEBUG", "No TTY detected; using built-in defaults for unset parameters")
        sources.append(default_source())
    return normalize_values(resolve_values(sources))
