"""
Configuration constants and profile handling for dropsy
"""
import os
from pathlib import Path
from typing import Optional

import yaml

from .errors import ConfigError
from .models import MonitorConfig

# ══════════════════════════════════════════════════════════════════════════════
#  DEFAULTS  ── overridden by YAML config or command-line flags
# ══════════════════════════════════════════════════════════════════════════════

PROGRAM_NAME = "dropsy"

# Maximum number of directories one monitor may watch
DIRS_MAX = 256

SSH_PORT = 22

# Seconds between scans; 0 runs a single cycle and exits
POLL_INTERVAL = 0

# SSH keep-alive NOP interval and connect/auth timeouts (seconds)
KEEPALIVE_INTERVAL = 30
CONNECT_TIMEOUT = 20

PASSWORD_ENV = "DROPSY_PASSWORD"


def default_parallelism() -> int:
    """One transfer job per CPU."""
    return os.cpu_count() or 1


# ══════════════════════════════════════════════════════════════════════════════
#  GLOBAL CONFIG FILE  ── $XDG_CONFIG_HOME/dropsy/config.yaml
# ══════════════════════════════════════════════════════════════════════════════

def get_global_config_dir() -> Path:
    """Return the global config directory for dropsy."""
    xdg = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg:
        return Path(xdg) / PROGRAM_NAME
    if os.name == "nt":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / PROGRAM_NAME
    return Path.home() / ".config" / PROGRAM_NAME


def load_global_config(path: Optional[Path] = None) -> dict:
    """
    Load the global YAML config. A missing file is an empty config;
    a file that is not valid YAML is a ConfigError.
    """
    cfg_path = path or get_global_config_dir() / "config.yaml"
    if not cfg_path.is_file():
        return {}
    try:
        with cfg_path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"cannot parse {cfg_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{cfg_path}: top level must be a mapping")
    return data


def get_profile(data: dict, profile_name: str = "default") -> dict:
    """
    Extract a named profile from a config.yaml data dict.
    Falls back to the first profile if the named one is not found.
    Returns a flat profile dict merged with top-level defaults.
    """
    defaults = data.get("defaults", {}) or {}
    profiles = data.get("profiles", []) or []
    if not profiles:
        return dict(defaults)
    profile = next((p for p in profiles if p.get("name") == profile_name), None)
    if profile is None:
        profile = profiles[0]
    merged = dict(defaults)
    merged.update(profile)
    return merged


# ══════════════════════════════════════════════════════════════════════════════
#  TARGETS  ── username@hostname:directoryPath
# ══════════════════════════════════════════════════════════════════════════════

def parse_target(target: str) -> tuple[str, str, str]:
    """Split ``user@host:path`` into (user, host, absolute path)."""
    user, sep, rest = target.partition("@")
    if not sep or not user:
        raise ConfigError(f"invalid target {target!r}: expected user@host:path")
    if ":" in user:
        raise ConfigError(f"invalid target {target!r}: user name may not contain ':'")
    host, sep, directory = rest.partition(":")
    if not sep or not host or not directory:
        raise ConfigError(f"invalid target {target!r}: expected user@host:path")
    return user, host, os.path.realpath(os.path.expanduser(directory))


def build_config(targets: list[str], profile: Optional[dict] = None,
                 **overrides) -> MonitorConfig:
    """
    Build a MonitorConfig from one or more targets plus a profile dict.

    All targets must name the same user and host. Keyword overrides
    (port, ssh_key, password, parallelism, poll_interval, remote_root,
    dry_run, force) win over profile keys when not None.
    """
    if not targets:
        raise ConfigError("at least one target is required")
    if len(targets) > DIRS_MAX:
        raise ConfigError(f"too many directories: {len(targets)} > {DIRS_MAX}")

    profile = profile or {}
    parsed = [parse_target(t) for t in targets]
    user, host, _ = parsed[0]
    for u, h, _ in parsed[1:]:
        if (u, h) != (user, host):
            raise ConfigError(
                f"all targets must share one remote: {user}@{host} != {u}@{h}"
            )

    def pick(key, profile_key, default=None):
        value = overrides.get(key)
        if value is not None:
            return value
        return profile.get(profile_key, default)

    parallelism = int(pick("parallelism", "parallel", default_parallelism()))
    if parallelism < 1:
        raise ConfigError(f"parallelism must be >= 1, got {parallelism}")
    interval = int(pick("poll_interval", "interval", POLL_INTERVAL))
    if interval < 0:
        raise ConfigError(f"poll interval must be >= 0, got {interval}")

    ssh_key = pick("ssh_key", "ssh_key")
    password = pick("password", "ssh_password")

    return MonitorConfig(
        directories=[d for _, _, d in parsed],
        username=user,
        hostname=host,
        password=str(password) if password else None,
        parallelism=parallelism,
        poll_interval=interval,
        port=int(pick("port", "port", SSH_PORT)),
        ssh_key=str(Path(ssh_key).expanduser()) if ssh_key else None,
        remote_root=pick("remote_root", "remote_root"),
        dry_run=bool(overrides.get("dry_run")),
        force=bool(overrides.get("force")),
    )
