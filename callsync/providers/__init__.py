from .base import CallHistorySource, ContactsSource, IdentityProvider, Provider, ProviderConfig, RemoteStore

__all__ = [
    "CallHistorySource",
    "ContactsSource",
    "IdentityProvider",
    "Provider",
    "ProviderConfig",
    "RemoteStore",
]
