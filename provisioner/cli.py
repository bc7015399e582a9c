"""CLI entry points for esxi-vm-builder."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Dict, List, Optional

from provisioner.build import PackerBuilder
from provisioner.config import resolve_config
from provisioner.constants import (
    DEFAULT_TEMPLATES_DIR,
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_USAGE,
    LOG_VERBOSE_ENV,
    SSH_PORT,
    WORK_DIR,
)
from provisioner.exceptions import BuildError, ProvisionError, ProvisionInterrupted
from provisioner.models import ProvisionConfig
from provisioner.parameters import PARAMETERS
from provisioner.remote import PowerController, RemoteSession
from provisioner.templates import list_template_sets, load_template_set, materialize
from provisioner.utils import get_env_bool, log, set_verbose
from provisioner.workspace import Workspace


class _ArgumentParser(argparse.ArgumentParser):
    """Usage errors exit with -1 (255) instead of argparse's 2."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(EXIT_USAGE, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = _ArgumentParser(
        prog="esxi-vm-builder",
        description="Render a VM template set, build it with packer on ESXi and power it on",
        add_help=False,
    )
    parser.add_argument("-h", "--help", action="store_true", help="Show this help message and exit")

    params = parser.add_argument_group("VM parameters (prompted for when missing)")
    for param in PARAMETERS:
        params.add_argument(param.flag, dest=param.dest, default=None, metavar="VALUE", help=param.prompt)

    options = parser.add_argument_group("Options")
    options.add_argument("--config", type=Path, default=None, help="YAML file with parameter values")
    options.add_argument("--templates-dir", type=Path, default=None, help="Directory holding template sets")
    options.add_argument("--work-dir", type=Path, default=None, help="Parent directory for run workspaces")
    options.add_argument("--ssh-port", type=int, default=SSH_PORT, help="SSH port of the ESXi host")
    options.add_argument("--list-templates", action="store_true", help="List available template sets and exit")
    options.add_argument("--show-config", action="store_true", help="Show resolved configuration and exit")
    options.add_argument("--dry-run", action="store_true", help="Render templates, then clean up without building")
    options.add_argument("--skip-validate", action="store_true", help="Do not run 'packer validate' before building")
    options.add_argument("--no-power-on", action="store_true", help="Leave the VM powered off after the build")
    options.add_argument("-v", "--verbose", action="store_true", help="Enable debug output")
    return parser


def list_templates(templates_dir: Optional[Path] = None) -> None:
    """Print available template sets."""
    if templates_dir is None:
        templates_dir = DEFAULT_TEMPLATES_DIR
    template_sets = list_template_sets(templates_dir)
    if not template_sets:
        log("WARN", f"No template sets found in {templates_dir}")
        return
    max_key = max(len(ts.os_type) for ts in template_sets)
    for ts in template_sets:
        print(f"  {ts.os_type:<{max_key}}  {ts.name}  (definition={ts.definition}, files={len(ts.files)})")


def show_config(cfg: ProvisionConfig) -> None:
    """Print the resolved configuration with secrets masked."""
    for name, value in cfg.masked().items():
        print(f"  {name}: {value}")


def provision(
    cfg: ProvisionConfig,
    templates_dir: Optional[Path] = None,
    work_dir: Optional[Path] = None,
    ssh_port: int = SSH_PORT,
    dry_run: bool = False,
    validate: bool = True,
    power_on: bool = True,
    builder: Optional[PackerBuilder] = None,
) -> Optional[str]:
    """Run the pipeline. Returns the VM id when it was powered on."""
    template_set = load_template_set(cfg.os_type, templates_dir)
    log("INFO", f"Template set: {template_set.os_type} ({template_set.name})")
    if builder is None:
        builder = PackerBuilder(secrets=[cfg.esxi_password, cfg.os_password])

    with Workspace(work_dir if work_dir is not None else WORK_DIR) as workspace:
        definition = materialize(template_set, workspace, cfg.as_template_values())
        if dry_run:
            for relative in template_set.files:
                log("INFO", f"Rendered: {workspace / relative}")
            packer_version = builder.version()
            if packer_version:
                log("SUCCESS", f"Build tool:  {packer_version}")
            else:
                log("WARN", f"Build tool:  {builder.binary} NOT found")
            log("INFO", "=== Dry-run complete (no VM built) ===")
            return None
        if validate:
            builder.validate(definition)
        builder.build(definition)

    if not power_on:
        log("INFO", f"Skipping power-on of '{cfg.vm_name}'")
        return None
    with RemoteSession(cfg.esxi_server, cfg.esxi_username, cfg.esxi_password, port=ssh_port) as session:
        return PowerController(session).power_on_by_name(cfg.vm_name)


def _cli_values(args: argparse.Namespace) -> Dict[str, Optional[str]]:
    return {param.dest: getattr(args, param.dest) for param in PARAMETERS}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.help:
        parser.print_help()
        return EXIT_USAGE

    set_verbose(args.verbose or get_env_bool(LOG_VERBOSE_ENV, False))

    if args.list_templates:
        list_templates(args.templates_dir)
        return 0

    try:
        cfg = resolve_config(_cli_values(args), config_path=args.config)
    except ProvisionError as exc:
        log("ERROR", str(exc))
        return EXIT_FAILURE
    except (KeyboardInterrupt, EOFError):
        print(flush=True)
        log("ERROR", "Aborted while reading parameters")
        return EXIT_INTERRUPTED

    if args.show_config:
        show_config(cfg)
        return 0

    log("INFO", f"VM: {cfg.vm_name} | Cores: {cfg.vm_cores} | RAM: {cfg.vm_ram_size} MB | Disk: {cfg.vm_disk_size} MB")
    log("INFO", f"Host: {cfg.esxi_server} | Datastore: {cfg.esxi_datastore} | Network: {cfg.vm_network}")

    try:
        vmid = provision(
            cfg,
            templates_dir=args.templates_dir,
            work_dir=args.work_dir,
            ssh_port=args.ssh_port,
            dry_run=args.dry_run,
            validate=not args.skip_validate,
            power_on=not args.no_power_on,
        )
    except BuildError as exc:
        log("ERROR", str(exc))
        return exc.returncode or EXIT_FAILURE
    except ProvisionInterrupted as exc:
        log("ERROR", str(exc))
        return 128 + exc.signum
    except ProvisionError as exc:
        log("ERROR", str(exc))
        return EXIT_FAILURE
    except KeyboardInterrupt:
        log("ERROR", "Interrupted")
        return EXIT_INTERRUPTED
    except Exception as exc:
        log("ERROR", f"Unexpected error: {exc}")
        log("ERROR", "This is likely a bug. Please report it with the output above.")
        import traceback

        traceback.print_exc()
        return EXIT_FAILURE

    if vmid is not None:
        log("SUCCESS", f"VM '{cfg.vm_name}' (id {vmid}) is up")
    return 0


def main_entry() -> None:
    sys.exit(main())
