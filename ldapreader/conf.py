"""
Configuration lookup for ldapreader.

Settings are read from Django settings when they are configured, using the
``LDAPREADER_`` prefix, and fall back to the defaults below otherwise.  Server
connection blocks live in ``settings.LDAP_SERVERS``, keyed first by server name
and then by purpose::

    LDAP_SERVERS = {
        "corp": {
            "read": {
                "url": "ldap://ldap.example.org:389",
                "user": "cn=reader,ou=services,dc=example,dc=org",
                "password": "secret",
                "page_size": 500,
            },
        },
    }
"""

from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from ldapreader import ldap

#: Defaults used when Django settings are absent or do not override them
DEFAULTS: dict[str, Any] = {
    "PAGE_SIZE": 1000,
    # mandatory paging: fail rather than accept an unpaged result
    "PAGING_CRITICAL": True,
    "MAX_ATTRIBUTES": 50,
    "PROTOCOL_VERSION": 3,
}

SUPPORTED_PROTOCOL_VERSIONS = (ldap.VERSION2, ldap.VERSION3)  # type: ignore[attr-defined]


def get_setting(name: str) -> Any:
    """
    Get configuration value from Django settings with fallback.

    Args:
        name: Name of the setting (without the ``LDAPREADER_`` prefix)

    Raises:
        KeyError: ``name`` is not an ldapreader setting

    Returns:
        Configuration value from settings or the default

    """
    default = DEFAULTS[name]
    if not settings.configured:
        return default
    return getattr(settings, f"LDAPREADER_{name}", default)


def default_page_size() -> int:
    return int(get_setting("PAGE_SIZE"))


def default_paging_critical() -> bool:
    return bool(get_setting("PAGING_CRITICAL"))


def max_attributes() -> int:
    return int(get_setting("MAX_ATTRIBUTES"))


def default_protocol_version() -> int:
    return int(get_setting("PROTOCOL_VERSION"))


def validate_settings() -> None:
    """
    Validate the ldapreader settings for consistency.

    Raises:
        ImproperlyConfigured: a setting has an unusable value

    """
    page_size = default_page_size()
    if page_size < 1:
        msg = f"LDAPREADER_PAGE_SIZE ({page_size}) must be positive"
        raise ImproperlyConfigured(msg)
    limit = max_attributes()
    if limit < 1:
        msg = f"LDAPREADER_MAX_ATTRIBUTES ({limit}) must be positive"
        raise ImproperlyConfigured(msg)
    version = default_protocol_version()
    if version not in SUPPORTED_PROTOCOL_VERSIONS:
        msg = f"LDAPREADER_PROTOCOL_VERSION ({version}) must be 2 or 3"
        raise ImproperlyConfigured(msg)


def get_server_config(server: str, key: str = "read") -> dict[str, Any]:
    """
    Return the ``settings.LDAP_SERVERS[server][key]`` block.

    Args:
        server: the name of the server in ``LDAP_SERVERS``

    Keyword Args:
        key: which block of that server to use

    Raises:
        ImproperlyConfigured: ``LDAP_SERVERS`` is missing, has no such block,
            or the block has no ``url``

    Returns:
        A copy of the configuration block.

    """
    if not settings.configured:
        msg = "Django settings are not configured, so LDAP_SERVERS is unavailable"
        raise ImproperlyConfigured(msg)
    try:
        servers = settings.LDAP_SERVERS
    except AttributeError as e:
        msg = "settings.LDAP_SERVERS is not defined"
        raise ImproperlyConfigured(msg) from e
    try:
        config = dict(servers[server][key])
    except KeyError as e:
        msg = f'settings.LDAP_SERVERS has no "{key}" block for server "{server}"'
        raise ImproperlyConfigured(msg) from e
    if not config.get("url"):
        msg = f'settings.LDAP_SERVERS["{server}"]["{key}"] has no "url"'
        raise ImproperlyConfigured(msg)
    return config
