"""speclock Configuration — project-level .speclock.yml support.

Loads configuration from .speclock.yml (or .speclock.yaml, .speclock.json)
found by walking up from the working directory.

Example .speclock.yml:
    backend: auto            # auto | z3 | none
    timeout_ms: 10000
    parallel: true
    parallel_workers: 0      # 0 = auto (cpu_count, capped at 8)
    static_decisions: true   # let Tier 1 settle trivial contracts
    constants:
      COINBASE_MATURITY: 100
    unsigned_types:
      - Amount
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import yaml

from speclock.backends import BACKEND_NAMES
from speclock.constants import ConstantTable
from speclock.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class SpecLockConfig:
    """Project-level speclock configuration."""
    # Solver backend: "auto", "z3", "none"
    backend: str = "auto"
    # Per-contract wall-clock budget; 0 disables the timeout
    timeout_ms: int = 10_000
    parallel: bool = True
    parallel_workers: int = 0  # 0 = auto (cpu_count)
    static_decisions: bool = True
    # Extra named constants, merged over the defaults
    constants: Dict[str, int] = field(default_factory=dict)
    # Extra type names treated as unsigned
    unsigned_types: List[str] = field(default_factory=list)
    source: Optional[str] = None

    def constant_table(self) -> ConstantTable:
        return ConstantTable(self.constants)

    def worker_count(self, jobs: int) -> int:
        if not self.parallel:
            return 1
        workers = self.parallel_workers
        if workers <= 0:
            workers = min(os.cpu_count() or 1, jobs, 8)
        return max(1, workers)


# ---------------------------------------------------------------------------
# Config file names (in priority order)
# ---------------------------------------------------------------------------

_CONFIG_FILES = [
    ".speclock.yml",
    ".speclock.yaml",
    ".speclock.json",
]


def find_config(start_dir: str = ".") -> Optional[str]:
    """Find the nearest config file by walking up from start_dir."""
    current = os.path.abspath(start_dir)
    while True:
        for name in _CONFIG_FILES:
            path = os.path.join(current, name)
            if os.path.isfile(path):
                return path
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return None


def load_config(path: Optional[str] = None, start_dir: str = ".") -> SpecLockConfig:
    """Load configuration from a file.

    If no path is given, searches for a config file starting from start_dir.
    If no config file is found, returns defaults. A file that exists but
    cannot be parsed or holds invalid values raises ConfigError.
    """
    if path is None:
        path = find_config(start_dir)

    if path is None:
        return SpecLockConfig()

    try:
        with open(path, "r") as f:
            content = f.read()
    except OSError as e:
        raise ConfigError(f"cannot read config: {e}", path) from e

    try:
        if path.endswith(".json"):
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"cannot parse config: {e}", path) from e

    config = config_from_dict(data or {}, path)
    logger.debug("Loaded configuration from %s", path)
    return config


def config_from_dict(data: Any, path: Optional[str] = None) -> SpecLockConfig:
    """Convert a parsed mapping into a validated SpecLockConfig."""
    if not isinstance(data, dict):
        raise ConfigError("top level must be a mapping", path)

    config = SpecLockConfig(source=path)
    known = {"backend", "timeout_ms", "parallel", "parallel_workers",
             "static_decisions", "constants", "unsigned_types"}
    for key in data:
        if key not in known:
            logger.warning("Ignoring unknown config key %r in %s", key, path or "<dict>")

    if "backend" in data:
        backend = str(data["backend"]).lower()
        if backend not in BACKEND_NAMES:
            raise ConfigError(f"backend must be one of {', '.join(BACKEND_NAMES)}, got {backend!r}", path)
        config.backend = backend

    for key in ("timeout_ms", "parallel_workers"):
        if key in data:
            value = data[key]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"{key} must be a non-negative integer, got {value!r}", path)
            setattr(config, key, value)

    for key in ("parallel", "static_decisions"):
        if key in data:
            if not isinstance(data[key], bool):
                raise ConfigError(f"{key} must be true or false, got {data[key]!r}", path)
            setattr(config, key, data[key])

    constants = data.get("constants") or {}
    if not isinstance(constants, dict):
        raise ConfigError("constants must be a mapping of name to integer", path)
    for name, value in constants.items():
        if isinstance(value, bool) or not isinstance(value, int):
            raise ConfigError(f"constant {name!r} must be an integer, got {value!r}", path)
        config.constants[str(name)] = value

    unsigned = data.get("unsigned_types") or []
    if not isinstance(unsigned, list) or not all(isinstance(t, str) for t in unsigned):
        raise ConfigError("unsigned_types must be a list of type names", path)
    config.unsigned_types = list(unsigned)

    return config
