from .provider import JsonCallHistorySource, StaticIdentityProvider, YamlContactsSource, normalize_number

__all__ = ['JsonCallHistorySource', 'StaticIdentityProvider', 'YamlContactsSource', 'normalize_number']
