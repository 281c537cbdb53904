"""Bundled OpenShift resource definitions."""

from __future__ import annotations

import copy
from functools import lru_cache
from importlib import resources
from typing import Any

import yaml

from subatomic.core.errors import ConfigurationError


@lru_cache
def _load(filename: str) -> dict[str, Any]:
    text = resources.files(__package__).joinpath(filename).read_text(encoding="utf-8")
    return yaml.safe_load(text) or {}


def devops_resource(name: str) -> dict[str, Any]:
    """Return a fresh copy of one of the DevOps project resource definitions."""
    definitions = _load("devops.yaml")
    if name not in definitions:
        raise ConfigurationError(f"Unknown DevOps resource definition {name}", {"name": name})
    return copy.deepcopy(definitions[name])
