"""
LDAP server capability and schema detection, with caching.

This module provides the :py:class:`LdapServerSchema` class, which reads the
root DSE and the subschema entry of a directory server once per server and
caches what it learned for the life of the process.
"""

import logging
import threading
from typing import Any, ClassVar

import ldap
from ldap.schema.models import AttributeType

from .conf import get_schema_dn
from .exceptions import SchemaFetchError, ldap_error_text
from .sorting import SORTING_OID

logger = logging.getLogger(__name__)


class LdapServerSchema:
    """
    Detection and caching of what a directory server supports.

    Everything here is a class method and works on a connection provided by
    :py:class:`~ldapmapper.mapper.LdapMapper`.  Results are cached per
    ``cache_key``; the mapper uses its server key and URL, so two mappers
    pointed at the same server share one cache entry.
    """

    #: Root DSE information per cache key
    _root_dse_cache: ClassVar[dict[str, dict[str, Any]]] = {}
    #: Attribute name to syntax OID per cache key
    _attribute_cache: ClassVar[dict[str, dict[str, str]]] = {}
    #: Thread lock for cache access
    _lock = threading.Lock()

    @classmethod
    def _default_root_dse(cls) -> dict[str, Any]:
        return {"supported_controls": set(), "subschema_dn": None}

    @classmethod
    def get_root_dse(cls, connection: Any, cache_key: str) -> dict[str, Any]:
        """
        Read the root DSE, querying only once per server.

        Args:
            connection: a bound python-ldap connection
            cache_key: identifies the server

        Raises:
            ldap.SERVER_DOWN: the server went away
            ldap.CONNECT_ERROR: we could not connect

        Returns:
            A dict with ``supported_controls`` (a set of OIDs) and
            ``subschema_dn`` (a DN or ``None``).

        """
        with cls._lock:
            if cache_key in cls._root_dse_cache:
                return cls._root_dse_cache[cache_key]
            try:
                result = connection.search_s(
                    "",
                    ldap.SCOPE_BASE,
                    "(objectClass=*)",
                    ["supportedControl", "subschemaSubentry"],
                )
            except ldap.LDAPError as e:
                if isinstance(e, (ldap.SERVER_DOWN, ldap.CONNECT_ERROR)):
                    raise
                logger.warning(
                    "ldapmapper.schema.root-dse.failed server=%s error=%s",
                    cache_key,
                    ldap_error_text(e),
                )
                info = cls._default_root_dse()
                cls._root_dse_cache[cache_key] = info
                return info
            info = cls._default_root_dse()
            if result and isinstance(result[0][1], dict):
                attrs = {k.lower(): v for k, v in result[0][1].items()}
                info["supported_controls"] = {
                    control.decode("utf-8") for control in attrs.get("supportedcontrol", [])
                }
                subschema = attrs.get("subschemasubentry", [])
                if subschema:
                    info["subschema_dn"] = subschema[0].decode("utf-8")
            cls._root_dse_cache[cache_key] = info
            return info

    @classmethod
    def check_server_sorting_support(cls, connection: Any, cache_key: str) -> bool:
        """
        Return ``True`` if the server advertises the Server-Side Sort control.
        """
        supported = SORTING_OID in cls.get_root_dse(connection, cache_key)[
            "supported_controls"
        ]
        if not supported:
            logger.debug(
                "ldapmapper.schema.no-server-side-sorting server=%s", cache_key
            )
        return supported

    @classmethod
    def parse_attribute_types(cls, values: list[bytes | str]) -> dict[str, str]:
        """
        Parse ``attributeTypes`` values into a map of attribute name to syntax
        OID.

        Every name of an attribute is included, lower-cased, so ``cn`` and
        ``commonName`` both map to the same syntax.  Attributes that inherit
        their syntax map to ``""``.

        Args:
            values: raw ``attributeTypes`` values

        Returns:
            A dict of attribute name to syntax OID.

        """
        attributes: dict[str, str] = {}
        for value in values:
            text = value.decode("utf-8") if isinstance(value, bytes) else value
            try:
                attribute_type = AttributeType(text)
            except (ValueError, KeyError, IndexError):
                logger.debug("ldapmapper.schema.unparseable value=%s", text)
                continue
            for name in attribute_type.names:
                attributes[name.lower()] = attribute_type.syntax or ""
        return attributes

    @classmethod
    def get_attribute_types(cls, connection: Any, cache_key: str) -> dict[str, str]:
        """
        Return the attribute name to syntax OID map for a server, reading the
        subschema entry on first use.

        Args:
            connection: a bound python-ldap connection
            cache_key: identifies the server

        Raises:
            SchemaFetchError: the subschema entry could not be read, or had
                no attribute types in it

        Returns:
            A dict of lower-cased attribute name to syntax OID.

        """
        if cache_key in cls._attribute_cache:
            return cls._attribute_cache[cache_key]
        schema_dn = cls.get_root_dse(connection, cache_key)["subschema_dn"]
        if not schema_dn:
            schema_dn = get_schema_dn()
        try:
            result = connection.search_s(
                schema_dn, ldap.SCOPE_BASE, "(objectClass=*)", ["attributeTypes"]
            )
        except ldap.LDAPError as e:
            msg = "Unable to fetch schema"
            raise SchemaFetchError(msg, ldap_error_text(e)) from e
        values: list[bytes] = []
        if result and isinstance(result[0][1], dict):
            for name, attr_values in result[0][1].items():
                if name.lower() == "attributetypes":
                    values = attr_values
        if not values:
            msg = "Unable to fetch schema attribute types"
            raise SchemaFetchError(msg)
        attributes = cls.parse_attribute_types(values)
        with cls._lock:
            cls._attribute_cache[cache_key] = attributes
        logger.info(
            "ldapmapper.schema.loaded server=%s attributes=%d",
            cache_key,
            len(attributes),
        )
        return attributes

    @classmethod
    def clear_cache(cls, cache_key: str | None = None) -> None:
        """
        Forget what we learned about one server, or about all of them.
        """
        with cls._lock:
            if cache_key is None:
                cls._root_dse_cache.clear()
                cls._attribute_cache.clear()
            else:
                cls._root_dse_cache.pop(cache_key, None)
                cls._attribute_cache.pop(cache_key, None)
