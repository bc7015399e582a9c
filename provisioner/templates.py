"""Template sets and placeholder rendering for esxi-vm-builder."""

from __future__ import annotations

import json
import re
import shutil
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional

try:
    import yaml  # type: ignore
except ImportError as exc:  # pragma: no cover
    raise SystemExit("PyYAML is required but not installed") from exc

from provisioner.constants import (
    DEFAULT_TEMPLATES_DIR,
    PLACEHOLDER_RE,
    TEMPLATE_MANIFEST,
    WORKSPACE_PLACEHOLDER,
)
from provisioner.exceptions import TemplateError
from provisioner.models import TemplateSet
from provisioner.utils import log

Escaper = Callable[[str], str]


def json_escape(value: str) -> str:
    return json.dumps(value)[1:-1]


_SHELL_DQUOTE_SPECIAL = re.compile(r'([\\"$`])')


def shell_escape(value: str) -> str:
    """Escape a value for use inside a double-quoted shell string.

    Shell templates must place every placeholder between double quotes.
    """
    return _SHELL_DQUOTE_SPECIAL.sub(r"\\\1", value)


ESCAPERS: Dict[str, Escaper] = {
    ".json": json_escape,
    ".sh": shell_escape,
}


def _read_manifest(path: Path) -> Dict[str, object]:
    manifest = path / TEMPLATE_MANIFEST
    if not manifest.exists():
        raise TemplateError(f"Template set {path} has no {TEMPLATE_MANIFEST}")
    try:
        data = yaml.safe_load(manifest.read_text()) or {}
    except yaml.YAMLError as exc:
        raise TemplateError(f"Invalid {manifest}: {exc}")
    if not isinstance(data, dict):
        raise TemplateError(f"{manifest} must contain a mapping")
    return data


def _template_files(path: Path) -> List[str]:
    return sorted(
        str(item.relative_to(path))
        for item in path.rglob("*")
        if item.is_file() and item.name != TEMPLATE_MANIFEST
    )


def load_template_set(os_type: str, templates_dir: Optional[Path] = None) -> TemplateSet:
    if templates_dir is None:
        templates_dir = DEFAULT_TEMPLATES_DIR
    path = templates_dir / os_type
    if not os_type or "/" in os_type or not path.is_dir():
        available = [ts.os_type for ts in list_template_sets(templates_dir)]
        available_list = "\n    ".join(available) or "(none)"
        raise TemplateError(
            f"Unknown OS type '{os_type}'.\n"
            f"  Available template sets in {templates_dir}:\n"
            f"    {available_list}\n"
            f"  Use --list-templates to see details."
        )
    manifest = _read_manifest(path)
    definition = manifest.get("definition")
    if not definition:
        raise TemplateError(f"{path / TEMPLATE_MANIFEST} does not name a 'definition' file")
    files = _template_files(path)
    if str(definition) not in files:
        raise TemplateError(f"Machine definition '{definition}' missing from template set {path}")
    return TemplateSet(
        os_type=os_type,
        name=str(manifest.get("name", os_type)),
        path=path,
        definition=str(definition),
        description=str(manifest.get("description", "")),
        files=files,
    )


def list_template_sets(templates_dir: Optional[Path] = None) -> List[TemplateSet]:
    if templates_dir is None:
        templates_dir = DEFAULT_TEMPLATES_DIR
    if not templates_dir.is_dir():
        return []
    result = []
    for child in sorted(templates_dir.iterdir()):
        if child.is_dir() and (child / TEMPLATE_MANIFEST).exists():
            result.append(load_template_set(child.name, templates_dir))
    return result


def render_text(text: str, values: Mapping[str, str], escape: Optional[Escaper] = None, source: str = "") -> str:
    """Replace ``${name}`` placeholders in a single pass.

    ``$${name}`` renders as a literal ``${name}``. Names without a value raise
    :class:`TemplateError`, as do values containing a line break.
    """
    unresolved: List[str] = []

    def _substitute(match) -> str:
        escaped, name = match.group(1), match.group(2)
        if escaped:
            return "${" + name + "}"
        if name not in values:
            unresolved.append(name)
            return match.group(0)
        value = values[name]
        if "\n" in value or "\r" in value:
            raise TemplateError(f"Value for '{name}' must not contain line breaks")
        return escape(value) if escape else value

    rendered = PLACEHOLDER_RE.sub(_substitute, text)
    if unresolved:
        where = f" in {source}" if source else ""
        names = ", ".join(sorted(set(unresolved)))
        raise TemplateError(f"Unresolved placeholders{where}: {names}")
    return rendered


def render_file(path: Path, values: Mapping[str, str]) -> None:
    text = path.read_text()
    path.write_text(render_text(text, values, ESCAPERS.get(path.suffix.lower()), source=str(path)))


def materialize(template_set: TemplateSet, workspace_dir: Path, values: Mapping[str, str]) -> Path:
    """Copy a template set into the workspace and render it. Returns the definition path."""
    render_values = dict(values)
    render_values[WORKSPACE_PLACEHOLDER] = str(workspace_dir.resolve())
    log("INFO", f"Rendering template set '{template_set.os_type}' into {workspace_dir}")
    for relative in template_set.files:
        destination = workspace_dir / relative
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copy2(template_set.path / relative, destination)
    for relative in template_set.files:
        render_file(workspace_dir / relative, render_values)
        log("DEBUG", f"Rendered {relative}")
    return workspace_dir / template_set.definition
