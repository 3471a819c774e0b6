"""Config file discovery and loading.

Walk-up finder locates crudforge.toml, similar to how git finds .git/.
Supports the CRUDFORGE_CONFIG env var and the --config CLI flag.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from crudforge.config.models import CrudforgeConfig

CONFIG_FILENAME = "crudforge.toml"
CONFIG_ENV_VAR = "CRUDFORGE_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for crudforge.toml.

    Returns the path to the config file, or None if not found.
    Checks CRUDFORGE_CONFIG first.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            return None
        current = parent


def load_config(path: Path | None = None, cwd: Path | None = None) -> CrudforgeConfig:
    """Load and validate config from a TOML file.

    Returns the default config when no file is found.
    """
    if path is None:
        path = find_config(cwd)
    if path is None:
        return CrudforgeConfig()

    data: dict[str, Any] = tomllib.loads(path.read_text(encoding="utf-8"))
    return CrudforgeConfig.model_validate(data)
