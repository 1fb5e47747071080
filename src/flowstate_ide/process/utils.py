"""Utility helpers for editor process commands."""

from __future__ import annotations

import os
import re
from typing import Mapping

_SANITIZED_VARS = {
    "PYTHONHOME",
    "PYTHONPATH",
    "VIRTUAL_ENV",
    "PIP_RESPECT_VIRTUALENV",
    "ELECTRON_RUN_AS_NODE",
}

_UNSAFE_PROCESS_CHARS = re.compile(r"[^a-zA-Z0-9._\-\s]")


def sanitize_environment(additional: Mapping[str, str] | None = None) -> dict[str, str]:
    """Return a sanitized environment suitable for subprocess execution."""

    env = dict(os.environ)
    for key in _SANITIZED_VARS:
        env.pop(key, None)
    if additional:
        env.update(additional)
    return env


def sanitize_process_name(name: str) -> str:
    """Strip everything but alphanumerics, dots, underscores, hyphens and spaces."""

    if not isinstance(name, str):
        raise TypeError("Process name must be a string")
    return _UNSAFE_PROCESS_CHARS.sub("", name).strip()


__all__ = ["sanitize_environment", "sanitize_process_name"]
