"""Profile loading and validation for YAML-based mosfetctl configuration."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from mosfetctl.core.errors import ConfigLoadError, ConfigValidationError
from mosfetctl.core.model import AddressCandidate, LockSpec, Profile

LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedProfile:
    profile: Profile
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("mosfetctl.schemas").joinpath("profile.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def user_config_path() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "mosfetctl/config.yaml"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _validate(doc: dict[str, Any], source: Path | Traversable) -> None:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = {section: dict(values) for section, values in base.items()}
    for section, values in override.items():
        merged.setdefault(section, {}).update(values)
    return merged


def _build_profile(doc: dict[str, Any], source: Path | Traversable) -> Profile:
    candidates = tuple(
        AddressCandidate(name=str(c["name"]), base=int(c["base"]))
        for c in doc["addressing"]["candidates"]
    )
    names = [c.name for c in candidates]
    if len(set(names)) != len(names):
        raise ConfigValidationError(f"Address candidate names must be unique in {source}")

    lock = doc["lock"]
    return Profile(
        bus_number=int(doc["bus"]["number"]),
        line_inversion=int(doc["addressing"]["line_inversion"]),
        candidates=candidates,
        verify_attempts=int(doc["verify"]["attempts"]),
        lock=LockSpec(
            name=str(lock["name"]),
            initial_count=int(lock["initial_count"]),
            timeout_s=float(lock["timeout_s"]),
        ),
        strict_slave_address=bool(doc["serial"]["strict_slave_address"]),
        self_test_step_s=float(doc["self_test"]["step_delay_s"]),
    )


def _packaged_defaults() -> Traversable:
    return resources.files("mosfetctl.profiles").joinpath("default.yaml")


def load_profile(path: Path | None = None) -> LoadedProfile:
    """Load the packaged defaults, overlaid with *path* or the user config file."""
    warnings: list[str] = []

    defaults_path = _packaged_defaults()
    doc = _read_yaml(defaults_path)
    _validate(doc, defaults_path)

    override_path = path if path is not None else user_config_path()
    if path is not None or override_path.is_file():
        override = _read_yaml(override_path)
        _validate(override, override_path)
        LOGGER.debug("Applying config overrides from %s", override_path)
        merged = _merge(doc, override)
        for key in ("name", "initial_count"):
            if merged["lock"][key] != doc["lock"][key]:
                warning = (
                    f"User config {override_path} changes lock.{key}; sibling tools on the "
                    "same bus will no longer be serialized with mosfetctl"
                )
                LOGGER.warning(warning)
                warnings.append(warning)
        doc = merged
        return LoadedProfile(profile=_build_profile(doc, override_path), warnings=tuple(warnings))

    return LoadedProfile(profile=_build_profile(doc, defaults_path), warnings=tuple(warnings))
