#!/usr/bin/env python3
"""Validate bundled template sets: rendering and ISO URL reachability."""

from __future__ import annotations

import json
import sys

import requests

from provisioner.constants import DEFAULT_TEMPLATES_DIR, WORKSPACE_PLACEHOLDER
from provisioner.exceptions import TemplateError
from provisioner.parameters import PARAMETERS
from provisioner.templates import ESCAPERS, list_template_sets, render_text

REQUEST_TIMEOUT = 30
USER_AGENT = "esxi-vm-builder/template-validator (GitHub Actions)"

SAMPLE_VALUES = {param.name: param.default or f"sample-{param.name}" for param in PARAMETERS}
SAMPLE_VALUES.update(
    {
        "vmCores": "2",
        "vmRamSize": "2048",
        "vmDiskSize": "20000",
        "osProxy": "http://proxy.example:3128/",
        "osInstallDocker": "true",
        WORKSPACE_PLACEHOLDER: "/tmp/esxi-vm-builder-check",
    }
)


# ── Phase 1: Rendering (fail-fast) ──────────────────────────────────


def validate_rendering() -> tuple[list[str], dict[str, list[str]]]:
    errors: list[str] = []
    iso_urls: dict[str, list[str]] = {}

    template_sets = list_template_sets(DEFAULT_TEMPLATES_DIR)
    if not template_sets:
        errors.append(f"No template sets found in {DEFAULT_TEMPLATES_DIR}")
        return errors, iso_urls

    for ts in template_sets:
        for relative in ts.files:
            path = ts.path / relative
            try:
                rendered = render_text(
                    path.read_text(), SAMPLE_VALUES, ESCAPERS.get(path.suffix.lower()), source=str(path)
                )
            except TemplateError as exc:
                errors.append(f"[{ts.os_type}] {exc}")
                continue
            if relative != ts.definition:
                continue
            try:
                definition = json.loads(rendered)
            except ValueError as exc:
                errors.append(f"[{ts.os_type}] rendered {relative} is not valid JSON: {exc}")
                continue
            urls = [b["iso_url"] for b in definition.get("builders", []) if b.get("iso_url")]
            iso_urls[ts.os_type] = urls

    return errors, iso_urls


# ── Phase 2: ISO URL reachability (collect-all) ─────────────────────


def check_url(key: str, url: str) -> str | None:
    """Return an error string if the URL is unreachable, else None."""
    session = requests.Session()
    session.headers["User-Agent"] = USER_AGENT

    try:
        resp = session.head(url, timeout=REQUEST_TIMEOUT, allow_redirects=True)
        if resp.status_code < 400:
            return None
        if resp.status_code in (403, 405):
            resp = session.get(url, timeout=REQUEST_TIMEOUT, allow_redirects=True, stream=True)
            resp.close()
            if resp.status_code < 400:
                return None
        return f"[{key}] HTTP {resp.status_code} for {url}"
    except requests.RequestException as exc:
        return f"[{key}] {exc.__class__.__name__}: {exc} for {url}"


def validate_urls(iso_urls: dict[str, list[str]]) -> list[str]:
    errors: list[str] = []
    for key, urls in iso_urls.items():
        for url in urls:
            err = check_url(key, url)
            if err:
                errors.append(err)
    return errors


# ── Main ─────────────────────────────────────────────────────────────


def main() -> int:
    print(f"Loading template sets from {DEFAULT_TEMPLATES_DIR}")

    print("\n=== Phase 1: Rendering ===")
    render_errors, iso_urls = validate_rendering()
    if render_errors:
        for e in render_errors:
            print(f"  ERROR: {e}")
        print(f"\nRendering failed with {len(render_errors)} error(s)")
        return 1
    print(f"  OK: {len(iso_urls)} template sets render cleanly")

    print("\n=== Phase 2: ISO URL reachability ===")
    url_errors = validate_urls(iso_urls)
    if url_errors:
        for e in url_errors:
            print(f"  ERROR: {e}")
        print(f"\nURL validation failed: {len(url_errors)} unreachable")
        return 1
    print("  OK: all ISO URLs reachable")

    print("\nAll checks passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
