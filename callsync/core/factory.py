from pathlib import Path
from typing import Any, Dict, Optional, Type

from .models import ConfigContext, CorrelatorConfig
from ..providers.base import CallHistorySource, ContactsSource, IdentityProvider, RemoteStore


class ProviderFactory:
    _registry: Dict[str, Type[RemoteStore]] = {}

    @classmethod
    def register(cls, name: str, provider_cls: Type[RemoteStore]):
        cls._registry[name] = provider_cls

    @classmethod
    def get_provider_class(cls, name: str) -> Type[RemoteStore]:
        if name not in cls._registry:
            # Lazy load built-in stores
            if name == "http":
                from ..providers.http.provider import HttpRemoteStore
                cls.register("http", HttpRemoteStore)
            elif name == "folder":
                from ..providers.folder.provider import FolderRemoteStore
                cls.register("folder", FolderRemoteStore)
            else:
                raise ValueError(f"Unknown remote store: {name}")

        return cls._registry[name]

    @classmethod
    def create_remote_store(cls, name: str, provider_config: Any = None) -> RemoteStore:
        provider_cls = cls.get_provider_class(name)
        config_model = provider_cls.get_config_model()
        if not isinstance(provider_config, config_model):
            provider_config = config_model(**(provider_config or {}))
        return provider_cls(provider_config)

    @classmethod
    def create_identity_provider(cls, context: ConfigContext) -> IdentityProvider:
        name = context.identity.provider
        if name == "static":
            from ..providers.local import StaticIdentityProvider
            return StaticIdentityProvider(context.identity)
        elif name == "http":
            from ..providers.http import HttpConfig
            from ..providers.http.provider import HttpIdentityProvider
            http_config = context.providers.get("http")
            if not isinstance(http_config, HttpConfig):
                http_config = HttpConfig(**(http_config or {}))
            return HttpIdentityProvider(context.identity, http_config)
        else:
            raise ValueError(f"Unknown identity provider: {name}")

    @classmethod
    def create_call_history(cls, config: CorrelatorConfig) -> Optional[CallHistorySource]:
        if not config.call_log_file:
            return None
        from ..providers.local import JsonCallHistorySource
        return JsonCallHistorySource(Path(config.call_log_file))

    @classmethod
    def create_contacts(cls, config: CorrelatorConfig) -> Optional[ContactsSource]:
        if not config.contacts_file:
            return None
        from ..providers.local import YamlContactsSource
        return YamlContactsSource(Path(config.contacts_file))
