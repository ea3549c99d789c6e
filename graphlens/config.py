"""
Configuration management for GraphLens.

Handles persistent configuration including:
- Neo4j connection settings (URI, credentials, database)
- UI settings (port, title)

Config is stored in config.json next to the executable/project root.
Environment variables (optionally loaded from .env) take precedence.
"""

import json
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from graphlens.paths import get_config_path, get_env_path


DEFAULT_URI = "neo4j://localhost:7687"
DEFAULT_PORT = 8081
DEFAULT_TITLE = "GraphLens"

# config.json key -> environment variable
_NEO4J_ENV_KEYS = {
    "neo4j_uri": "NEO4J_URI",
    "neo4j_username": "NEO4J_USERNAME",
    "neo4j_password": "NEO4J_PASSWORD",
    "neo4j_database": "NEO4J_DATABASE",
}


@dataclass(frozen=True)
class Neo4jSettings:
    """Connection settings for the query bridge."""
    uri: str = DEFAULT_URI
    username: str = "neo4j"
    password: str = ""
    database: Optional[str] = None


def load_env() -> None:
    """Load variables from .env without overriding the real environment."""
    load_dotenv(get_env_path(), override=False)


def load_config() -> dict:
    """Load configuration from config.json."""
    config_path = get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError):
            return {}
    return {}


def save_config(config: dict) -> None:
    """Save configuration to config.json."""
    config_path = get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


def _lookup(config: dict, key: str) -> Optional[str]:
    env_value = os.environ.get(_NEO4J_ENV_KEYS[key])
    if env_value:
        return env_value
    return config.get(key)


def get_neo4j_settings() -> Neo4jSettings:
    """
    Get the Neo4j connection settings.

    Priority per field:
    1. Environment variable (NEO4J_URI, NEO4J_USERNAME, ...)
    2. Stored in config.json
    3. Built-in default
    """
    config = load_config()
    defaults = Neo4jSettings()
    return Neo4jSettings(
        uri=_lookup(config, "neo4j_uri") or defaults.uri,
        username=_lookup(config, "neo4j_username") or defaults.username,
        password=_lookup(config, "neo4j_password") or defaults.password,
        database=_lookup(config, "neo4j_database") or defaults.database,
    )


def set_neo4j_settings(settings: Neo4jSettings) -> None:
    """Save the Neo4j settings to config.json and the current environment."""
    config = load_config()
    values = {
        "neo4j_uri": settings.uri,
        "neo4j_username": settings.username,
        "neo4j_password": settings.password,
        "neo4j_database": settings.database,
    }
    for key, value in values.items():
        if value:
            config[key] = value
            # Also set in environment for current session
            os.environ[_NEO4J_ENV_KEYS[key]] = value
        else:
            config.pop(key, None)
            os.environ.pop(_NEO4J_ENV_KEYS[key], None)
    save_config(config)


def has_neo4j_credentials() -> bool:
    """Return True if a password is available from env or config."""
    return bool(get_neo4j_settings().password)


def get_ui_port() -> int:
    try:
        return int(os.environ.get("GRAPHLENS_PORT", DEFAULT_PORT))
    except ValueError:
        return DEFAULT_PORT


def get_ui_title() -> str:
    return os.environ.get("GRAPHLENS_TITLE", DEFAULT_TITLE)
