"""Template metadata, listing and removal.

A template is a standalone qcow2 disk in the templates directory paired with
a ``.toml`` metadata file. VMs cloned from a template record its name as
``template_name`` in their ``config.toml``, which marks them as dependents.
"""

from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import tomli_w

log = logging.getLogger(__name__)

_DEFAULT_OS_FAMILY = "debian"
_STR_FIELDS = ("name", "source_vm", "arch", "memory", "disk", "user")


class TemplateError(Exception):
    """Raised when template metadata or files cannot be read or changed."""


class TemplateNotFound(TemplateError):
    """Raised when no template of the given name exists."""

    def __init__(self, name: str) -> None:
        super().__init__(f"template '{name}' not found")
        self.name = name


class TemplateAlreadyExists(TemplateError):
    """Raised when a template of the given name already exists."""

    def __init__(self, name: str) -> None:
        super().__init__(f"template '{name}' already exists")
        self.name = name


class TemplateHasDependents(TemplateError):
    """Raised when removing a template that VMs still use as a backing disk."""

    def __init__(self, name: str, dependents: list[str]) -> None:
        joined = ", ".join(dependents)
        super().__init__(f"template '{name}' is still used by VMs: {joined}")
        self.name = name
        self.dependents = list(dependents)


@dataclass
class TemplateMetadata:
    """Metadata stored alongside each template disk image."""

    name: str
    source_vm: str
    arch: str
    memory: str
    cpus: int
    disk: str
    user: str
    # Templates written before this field existed were all Debian-family.
    os_family: str = _DEFAULT_OS_FAMILY


@dataclass
class TemplateInfo:
    """Summary of an available template, including the VMs that use it."""

    name: str
    source_vm: str
    memory: str
    cpus: int
    disk: str
    dependents: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Return the stable JSON shape used by ``template ls --json``."""
        return {
            "name": self.name,
            "source_vm": self.source_vm,
            "memory": self.memory,
            "cpus": self.cpus,
            "disk": self.disk,
            "dependents": list(self.dependents),
        }


def _metadata_from_dict(data: dict[str, Any], path: Path) -> TemplateMetadata:
    values: dict[str, Any] = {}
    for key in _STR_FIELDS:
        value = data.get(key)
        if not isinstance(value, str):
            raise TemplateError(
                f"failed to parse template metadata {path}: "
                f"missing or invalid field '{key}'"
            )
        values[key] = value
    cpus = data.get("cpus")
    if not isinstance(cpus, int) or isinstance(cpus, bool) or cpus < 0:
        raise TemplateError(
            f"failed to parse template metadata {path}: missing or invalid field 'cpus'"
        )
    values["cpus"] = cpus
    os_family = data.get("os_family", _DEFAULT_OS_FAMILY)
    if not isinstance(os_family, str):
        raise TemplateError(
            f"failed to parse template metadata {path}: invalid field 'os_family'"
        )
    values["os_family"] = os_family
    return TemplateMetadata(**values)


def load_metadata(path: str | os.PathLike[str]) -> TemplateMetadata:
    """Read and validate a template metadata file."""
    path = Path(path)
    try:
        contents = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise TemplateError(f"failed to read template metadata {path}") from exc
    try:
        data = tomllib.loads(contents)
    except tomllib.TOMLDecodeError as exc:
        raise TemplateError(f"failed to parse template metadata {path}") from exc
    return _metadata_from_dict(data, path)


def save_metadata(meta: TemplateMetadata, path: str | os.PathLike[str]) -> None:
    """Write template metadata as TOML."""
    path = Path(path)
    try:
        path.write_text(tomli_w.dumps(asdict(meta)), encoding="utf-8")
    except OSError as exc:
        raise TemplateError(f"failed to write template metadata {path}") from exc


def find_template_dependents(
    instances_dir: str | os.PathLike[str], template_name: str
) -> list[str]:
    """Return the sorted names of VMs whose config refers to the template.

    Instances without a readable, parseable ``config.toml`` are ignored.
    """
    instances_dir = Path(instances_dir)
    if not instances_dir.exists():
        return []
    try:
        entries = list(instances_dir.iterdir())
    except OSError as exc:
        raise TemplateError(
            f"failed to read instances directory {instances_dir}"
        ) from exc

    dependents = []
    for entry in entries:
        config_path = entry / "config.toml"
        if not config_path.exists():
            continue
        try:
            config = tomllib.loads(config_path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, tomllib.TOMLDecodeError):
            continue
        if config.get("template_name") == template_name:
            dependents.append(entry.name)
    return sorted(dependents)


def list_templates(
    templates_dir: str | os.PathLike[str], instances_dir: str | os.PathLike[str]
) -> list[TemplateInfo]:
    """List all templates, sorted by name, with the VMs that depend on each."""
    templates_dir = Path(templates_dir)
    if not templates_dir.exists():
        return []
    try:
        paths = list(templates_dir.iterdir())
    except OSError as exc:
        raise TemplateError(
            f"failed to read templates directory {templates_dir}"
        ) from exc

    templates = []
    for path in paths:
        if path.suffix != ".toml":
            continue
        meta = load_metadata(path)
        templates.append(
            TemplateInfo(
                name=meta.name,
                source_vm=meta.source_vm,
                memory=meta.memory,
                cpus=meta.cpus,
                disk=meta.disk,
                dependents=find_template_dependents(instances_dir, meta.name),
            )
        )
    templates.sort(key=lambda info: info.name)
    return templates


def remove_template(
    templates_dir: str | os.PathLike[str],
    instances_dir: str | os.PathLike[str],
    name: str,
) -> None:
    """Delete a template's disk and metadata.

    Raises :class:`TemplateNotFound` if the disk is missing and
    :class:`TemplateHasDependents` if any VM still uses the template.
    """
    templates_dir = Path(templates_dir)
    disk_path = templates_dir / f"{name}.qcow2"
    meta_path = templates_dir / f"{name}.toml"

    if not disk_path.exists():
        raise TemplateNotFound(name)

    dependents = find_template_dependents(instances_dir, name)
    if dependents:
        raise TemplateHasDependents(name, dependents)

    try:
        disk_path.unlink()
    except OSError as exc:
        raise TemplateError(f"failed to delete template disk '{name}'") from exc
    # Hand-made templates may have no metadata file.
    try:
        meta_path.unlink()
    except OSError as exc:
        log.debug("could not remove template metadata %s: %s", meta_path, exc)