import logging
import yaml
import importlib
from pathlib import Path
from typing import Dict, Any, Optional
from dotenv import load_dotenv

from .models import (
    ConfigContext, PathsConfig, WatcherConfig, CorrelatorConfig,
    UploadConfig, IdentityConfig
)

logger = logging.getLogger("CallSync.Config")

# Load environment variables from .env file
load_dotenv()

DEFAULT_CONFIG_FILENAME = "config.yaml"


def load_yaml(path: Path) -> Dict[str, Any]:
    if path.exists():
        with open(path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}
    return {}


def load_provider_config(provider_name: str, user_provider_config: Dict[str, Any]) -> Any:
    """
    Dynamically load a provider's configuration.

    Args:
        provider_name: The name of the provider (e.g., 'http').
        user_provider_config: The provider section from the user's config.yaml.

    Returns:
        Validated Pydantic model for the provider configuration, or the raw
        dict if the provider has no config model.
    """
    try:
        module = importlib.import_module(f"callsync.providers.{provider_name}")
    except ImportError:
        logger.warning(f"Provider '{provider_name}' not found")
        return user_provider_config

    config_model = getattr(module, "Config", None)
    if config_model is None:
        return user_provider_config
    return config_model(**user_provider_config)


def resolve_config_path(config_path: Optional[str] = None) -> Optional[Path]:
    """Explicit path, then ./config.yaml, then ~/.config/callsync/config.yaml."""
    if config_path:
        return Path(config_path)

    cwd_config = Path(DEFAULT_CONFIG_FILENAME)
    home_config = Path.home() / ".config" / "callsync" / DEFAULT_CONFIG_FILENAME
    if cwd_config.exists():
        return cwd_config
    if home_config.exists():
        return home_config
    return None


def load_config(config_path: Optional[str] = None) -> ConfigContext:
    """Load configuration from file and env vars."""
    path = resolve_config_path(config_path)
    user_config = load_yaml(path) if path else {}

    upload = UploadConfig(**user_config.get("upload", {}))
    identity = IdentityConfig(**user_config.get("identity", {}))

    # Providers named by the active settings always get a validated config
    providers_section = user_config.get("providers", {}) or {}
    active_providers = set(providers_section.keys())
    active_providers.add(upload.remote)
    if identity.provider != "static":
        active_providers.add(identity.provider)

    providers_config = {}
    for provider_name in active_providers:
        if not provider_name:
            continue
        providers_config[provider_name] = load_provider_config(
            provider_name, providers_section.get(provider_name, {}) or {}
        )

    return ConfigContext(
        paths=PathsConfig(**user_config.get("paths", {})),
        watcher=WatcherConfig(**user_config.get("watcher", {})),
        correlator=CorrelatorConfig(**user_config.get("correlator", {})),
        upload=upload,
        identity=identity,
        providers=providers_config,
        debug=user_config.get("debug", False),
    )
