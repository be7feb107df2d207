"""Utility functions for configuration and settings."""

import json
import os
from typing import Dict, Any, Optional

DEFAULTS = {
    "cache_file": "content_cache.json",
    "identity_ttl_hours": 24 * 30,
    "update_ttl_hours": 6,
    "modrinth_api_base": "https://api.modrinth.com/v2",
    "curseforge_api_base": "https://api.curseforge.com/v1",
    "user_agent": "modsync/1.0",
    "request_timeout": 30,
    "catalog_sources": ["modrinth", "curseforge"],
    "instances_dir": "instances",
    "instances": {},
    "refresh_interval_hours": 6,
    "http_port": 8000,
}


def get_home() -> str:
    """Working directory: $MODSYNC_HOME, else the current directory"""
    return os.environ.get("MODSYNC_HOME") or os.getcwd()


def get_config(home: Optional[str] = None) -> Dict[str, Any]:
    """Get configuration from config.json, layered over DEFAULTS."""
    home = home or get_home()
    cfg = dict(DEFAULTS)
    try:
        with open(os.path.join(home, 'config.json'), 'r') as f:
            cfg.update(json.load(f))
    except FileNotFoundError:
        pass
    cfg["home"] = home
    return cfg


def resolve_path(cfg: Dict[str, Any], path: str) -> str:
    """Relative paths in the config are relative to the home directory"""
    if os.path.isabs(path):
        return path
    return os.path.join(cfg.get("home") or get_home(), path)


def get_curseforge_api_key(cfg: Dict[str, Any]) -> Optional[str]:
    """Config key, then $CURSEFORGE_API_KEY, then a curseforgeAPIkey file"""
    key = cfg.get("curseforge_api_key") or os.environ.get("CURSEFORGE_API_KEY")
    if key:
        return key.strip()
    key_file = resolve_path(cfg, "curseforgeAPIkey")
    if os.path.exists(key_file):
        with open(key_file) as f:
            return f.read().strip() or None
    return None


def get_instance(cfg: Dict[str, Any], instance_id: str) -> Optional[Dict[str, Any]]:
    """Instance settings with its content path filled in.

    Returns: {'id', 'path', 'mc_version', 'loader'} or None if unknown
    """
    instance = cfg.get("instances", {}).get(instance_id)
    if instance is None:
        return None
    path = instance.get("path") or os.path.join(cfg.get("instances_dir", "instances"), instance_id)
    return {
        "id": instance_id,
        "path": resolve_path(cfg, path),
        "mc_version": instance.get("mc_version", ""),
        "loader": instance.get("loader"),
    }
