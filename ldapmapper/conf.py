"""
Configuration lookups.

Directory connections are configured in ``settings.LDAP_SERVERS``::

    LDAP_SERVERS = {
        "default": {
            "basedn": "ou=people,dc=example,dc=com",
            "read": {
                "url": "ldap://ldap.example.com:389",
                "user": "cn=Directory Manager",
                "password": "password",
            },
            "write": {
                "url": "ldap://ldap-master.example.com:389",
                "user": "cn=Directory Manager",
                "password": "password",
            },
        }
    }

Package wide behavior is tuned with ``LDAPMAPPER_*`` settings; see the
getters below for names and defaults.
"""

from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

#: Attributes appended to every explicit field selection.
DEFAULT_FIELDS: list[str] = ["*"]

#: Search base label (lower-cased) to the attribute used as the key of
#: ``list`` query results.
DEFAULT_LIST_KEYS: dict[str, str] = {
    "person": "uid",
    "people": "uid",
    "group": "cn",
    "groups": "cn",
}

#: Where to look for the subschema entry when the root DSE doesn't say.
DEFAULT_SCHEMA_DN = "cn=Subschema"


def get_setting(setting_name: str, default_value: Any) -> Any:
    """
    Get a configuration value from Django settings with fallback.

    Args:
        setting_name: Name of the setting (without the ``LDAPMAPPER_`` prefix)
        default_value: Default value if the setting is not defined

    Returns:
        The configured value, or ``default_value``.

    """
    return getattr(settings, f"LDAPMAPPER_{setting_name}", default_value)


def get_server_config(server: str) -> dict[str, Any]:
    """
    Return the ``settings.LDAP_SERVERS`` block for ``server``.

    Args:
        server: a key into ``settings.LDAP_SERVERS``

    Raises:
        ImproperlyConfigured: ``LDAP_SERVERS`` is missing, has no such key, or
            the block lacks a ``read`` connection.

    Returns:
        The configuration dict.

    """
    try:
        config = settings.LDAP_SERVERS[server]
    except AttributeError as e:
        msg = "settings.LDAP_SERVERS does not exist!"
        raise ImproperlyConfigured(msg) from e
    except KeyError as e:
        msg = f"settings.LDAP_SERVERS has no key '{server}'"
        raise ImproperlyConfigured(msg) from e
    if "read" not in config:
        msg = f"settings.LDAP_SERVERS['{server}'] has no 'read' key"
        raise ImproperlyConfigured(msg)
    return config


def get_default_fields(config: dict[str, Any]) -> list[str]:
    """Per-server ``default_fields``, then ``LDAPMAPPER_DEFAULT_FIELDS``."""
    if "default_fields" in config:
        return list(config["default_fields"])
    return list(get_setting("DEFAULT_FIELDS", DEFAULT_FIELDS))


def get_list_keys(config: dict[str, Any]) -> dict[str, str]:
    """Per-server ``list_keys``, then ``LDAPMAPPER_LIST_KEYS``."""
    keys = config.get("list_keys", get_setting("LIST_KEYS", DEFAULT_LIST_KEYS))
    return {label.lower(): attribute for label, attribute in keys.items()}


def get_schema_dn() -> str:
    """Get the fallback subschema DN from settings or use the default."""
    return get_setting("SCHEMA_DN", DEFAULT_SCHEMA_DN)
