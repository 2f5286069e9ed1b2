"""Configuration management for tic.

Handles:
- .tic/config.yml parsing (backend selection, vocabulary, defaults)
- Environment variable overrides
- .tic/ directory discovery
"""

from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass, field
from typing import Any

import yaml


CONFIG_YAML = "config.yml"
TIC_DIR = ".tic"
DEFAULT_DB_NAME = "tic.db"
DEFAULT_CACHE_TTL = 30.0

DEFAULT_TYPES = ["epic", "issue", "task"]
DEFAULT_STATUSES = ["backlog", "todo", "in-progress", "review", "done"]
DEFAULT_ITERATION = "default"


@dataclass
class TicConfig:
    """User-facing config from config.yml."""
    backend: str = "local"
    remote: str = ""
    id_prefix: str = "tic"
    actor: str = ""
    db: str = ""
    json_output: bool = False
    cache_ttl: float = DEFAULT_CACHE_TTL
    types: list[str] = field(default_factory=lambda: list(DEFAULT_TYPES))
    statuses: list[str] = field(default_factory=lambda: list(DEFAULT_STATUSES))
    iterations: list[str] = field(default_factory=lambda: [DEFAULT_ITERATION])
    current_iteration: str = DEFAULT_ITERATION

    @property
    def has_remote(self) -> bool:
        return self.backend != "local"

    @classmethod
    def load(cls, tic_dir: str) -> TicConfig:
        """Load config.yml from the tic directory."""
        config_path = os.path.join(tic_dir, CONFIG_YAML)
        cfg = cls()
        if os.path.exists(config_path):
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
            cfg.backend = data.get("backend", "local")
            cfg.remote = data.get("remote", "")
            cfg.id_prefix = data.get("id-prefix", "tic")
            cfg.actor = data.get("actor", "")
            cfg.db = data.get("db", "")
            cfg.json_output = data.get("json", False)
            cfg.cache_ttl = float(data.get("cache-ttl", DEFAULT_CACHE_TTL))
            cfg.types = list(data.get("types") or DEFAULT_TYPES)
            cfg.statuses = list(data.get("statuses") or DEFAULT_STATUSES)
            cfg.iterations = list(data.get("iterations") or [DEFAULT_ITERATION])
            cfg.current_iteration = data.get("current-iteration", cfg.iterations[0])

        # Environment variable overrides
        if os.environ.get("TIC_ACTOR"):
            cfg.actor = os.environ["TIC_ACTOR"]
        if os.environ.get("TIC_DB"):
            cfg.db = os.environ["TIC_DB"]
        if os.environ.get("TIC_JSON"):
            cfg.json_output = os.environ["TIC_JSON"].lower() in ("1", "true", "yes")

        return cfg

    def save(self, tic_dir: str) -> None:
        """Save config to config.yml."""
        config_path = os.path.join(tic_dir, CONFIG_YAML)
        data: dict[str, Any] = {
            "backend": self.backend,
            "id-prefix": self.id_prefix,
            "types": self.types,
            "statuses": self.statuses,
            "iterations": self.iterations,
            "current-iteration": self.current_iteration,
        }
        if self.remote:
            data["remote"] = self.remote
        if self.actor:
            data["actor"] = self.actor
        if self.db:
            data["db"] = self.db
        if self.json_output:
            data["json"] = self.json_output
        if self.cache_ttl != DEFAULT_CACHE_TTL:
            data["cache-ttl"] = self.cache_ttl

        with open(config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)

    def add_iteration(self, name: str) -> bool:
        """Register an iteration name. Returns True if it was new."""
        if not name or name in self.iterations:
            return False
        self.iterations.append(name)
        return True

    def merge_remote(self, iterations: list[str], current_iteration: str,
                     statuses: list[str], types: list[str]) -> None:
        """Adopt the remote's vocabulary; the remote is authoritative."""
        if iterations:
            self.iterations = list(iterations)
        if current_iteration:
            self.current_iteration = current_iteration
            self.add_iteration(current_iteration)
        if statuses:
            self.statuses = list(statuses)
        if types:
            self.types = list(types)


def find_tic_dir(start: str | None = None) -> str | None:
    """Walk up from start directory to find the .tic/ directory.

    Returns absolute path to .tic/ directory, or None if not found.
    """
    if start is None:
        start = os.getcwd()
    current = os.path.abspath(start)
    while True:
        candidate = os.path.join(current, TIC_DIR)
        if os.path.isdir(candidate):
            return candidate
        parent = os.path.dirname(current)
        if parent == current:
            return None
        current = parent


def get_db_path(tic_dir: str, config: TicConfig | None = None) -> str:
    """Get the full path to the SQLite database."""
    env_db = os.environ.get("TIC_DB")
    if env_db:
        return env_db
    if config and config.db:
        if os.path.isabs(config.db):
            return config.db
        return os.path.join(tic_dir, config.db)
    return os.path.join(tic_dir, DEFAULT_DB_NAME)


def get_remote_path(tic_dir: str, config: TicConfig) -> str:
    """Resolve the configured remote location relative to the project root."""
    if not config.remote or os.path.isabs(config.remote):
        return config.remote
    return os.path.join(os.path.dirname(tic_dir), config.remote)


def get_actor(config: TicConfig | None = None) -> str:
    """Get the actor name used as comment author."""
    if os.environ.get("TIC_ACTOR"):
        return os.environ["TIC_ACTOR"]
    if config and config.actor:
        return config.actor
    # Try git user
    try:
        result = subprocess.run(
            ["git", "config", "user.email"],
            capture_output=True, text=True, timeout=5
        )
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
    except (FileNotFoundError, subprocess.TimeoutExpired):
        pass
    return os.environ.get("USER", "unknown")
