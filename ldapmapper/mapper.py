"""
The LDAP mapper: connections, searches, query orchestration and writes.

:py:class:`LdapMapper` is the facade of this package.  It turns query intents
into searches, flattens what comes back, resolves relationships, and reports
every outcome as a :py:class:`~ldapmapper.results.Result`.
"""

import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import replace
from functools import wraps
from pathlib import Path
from typing import Any

from django.core.exceptions import ImproperlyConfigured
from ldap import modlist

from ldapmapper import ldap

from .conf import get_default_fields, get_list_keys, get_server_config
from .dn import base_label
from .exceptions import (
    DirectoryConnectionError,
    InvalidQueryType,
    LdapMapperError,
    NoResults,
    ReadError,
    SchemaFetchError,
    SchemaViolation,
    SearchError,
    WriteError,
    ldap_error_text,
)
from .fields import attribute_list, select_fields, split_fields
from .filters import MATCH_ALL, compile_filter
from .normalize import is_entry, normalize, normalize_entry
from .query import ALL, COUNT, FIRST, LIST, QUERY_TYPES, Query, QueryIntent
from .relations import RelationshipResolver
from .results import ErrorRecord, Result
from .schema import LdapServerSchema
from .sorting import ServerSideSortControl, sort_entries
from .typing import AddModlist, LDAPData, ModifyModList, Record, ShapedRecord

logger = logging.getLogger("django-ldapmapper")


# -----------------------
# Decorators
# -----------------------


def atomic(key: str = "read") -> Callable:
    """
    Decorator to wrap methods that need to talk to an LDAP server.

    If the current thread already has a connection open, the wrapped method
    uses it; otherwise a connection is opened for the duration of the call.

    Args:
        key: Either "read" or "write". Determines which LDAP server to use.

    Raises:
        DirectoryConnectionError: we could not connect or bind

    Returns:
        A decorator that manages LDAP connection context for the wrapped method.

    """

    def real_decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self, *args, **kwargs) -> Any:
            if self.has_connection():
                # Ensure we're not currently in a wrapped function
                return func(self, *args, **kwargs)
            try:
                self.connect(key)
            except ldap.LDAPError as e:
                url = self.server_config(key).get("url")
                msg = f"Unable to connect to server {url}"
                raise DirectoryConnectionError(msg, ldap_error_text(e)) from e
            try:
                retval = func(self, *args, **kwargs)
            finally:
                # We do this in a finally: branch so that the ldap
                # connection gets cleaned up no matter what happens in
                # `func()`.
                self.disconnect()
            return retval

        return wrapper

    return real_decorator


# -----------------------
# Helper Classes
# -----------------------


class Modlist:
    """
    Helper for constructing python-ldap modlists for add and modify.

    Values may be strings, numbers, bytes or lists of those; everything is
    converted to a list of UTF-8 encoded bytes.
    """

    @staticmethod
    def to_bytes(value: Any) -> list[bytes]:
        if value is None:
            return []
        values = value if isinstance(value, list | tuple) else [value]
        return [v if isinstance(v, bytes) else str(v).encode("utf-8") for v in values]

    def add(self, data: Mapping[str, Any]) -> AddModlist:
        """
        Build the modlist for ``add_s``.  Empty attributes are left out.
        """
        return modlist.addModlist({key: self.to_bytes(value) for key, value in data.items()})

    def replace(self, data: Mapping[str, Any]) -> ModifyModList:
        """
        Build the modlist for ``modify_s``: every listed attribute is
        replaced, and attributes set to ``None`` or ``[]`` are deleted.
        """
        replacements: ModifyModList = []
        deletes: ModifyModList = []
        for key, value in data.items():
            values = self.to_bytes(value)
            if values:
                replacements.append((ldap.MOD_REPLACE, key, values))
            else:
                deletes.append((ldap.MOD_DELETE, key, None))
        return replacements + deletes


# -----------------------
# LdapMapper
# -----------------------


class LdapMapper:
    """
    Query, read and write one directory server.

    Configuration comes from ``settings.LDAP_SERVERS[server]``.  Connections
    are per thread: each public operation opens one, uses it for everything
    it does (relationship lookups included) and closes it again.  Don't share
    one operation across threads.

    Keyword Args:
        server: key into ``settings.LDAP_SERVERS``
        basedn: the default search base.  ``LDAP_SERVERS[server]["basedn"]``
            if not given.

    Raises:
        ImproperlyConfigured: the server is not configured, or there is no
            base DN

    """

    def __init__(self, server: str = "default", basedn: str | None = None) -> None:
        self.logger = logger
        self.server = server
        self.config: dict[str, Any] = get_server_config(server)
        self.basedn: str | None = basedn or self.config.get("basedn")
        if not self.basedn:
            msg = (
                f"LdapMapper: no basedn given and settings.LDAP_SERVERS"
                f"['{server}'] has no 'basedn' key"
            )
            raise ImproperlyConfigured(msg)
        self.default_fields: list[str] = get_default_fields(self.config)
        self.list_keys: dict[str, str] = get_list_keys(self.config)
        self.resolver = RelationshipResolver(self)
        self._credentials: tuple[str, str] | None = None
        # keys in these dictionaries get manipulated per thread
        self._ldap_objects: dict[threading.Thread, Any] = {}
        self._last_errors: dict[threading.Thread, ErrorRecord] = {}

    # -----------------------
    # Connections
    # -----------------------

    def server_config(self, key: str) -> dict[str, Any]:
        """
        Return the connection block for ``key``.  A server with no ``write``
        block writes through its ``read`` connection.
        """
        if key == "write" and "write" not in self.config:
            key = "read"
        return self.config[key]

    @property
    def cache_key(self) -> str:
        """Identifies our server in the process-wide schema cache."""
        return f"{self.server}:{self.server_config('read').get('url', '')}"

    def has_connection(self) -> bool:
        return threading.current_thread() in self._ldap_objects

    def set_connection(self, obj: Any) -> None:
        """
        Set the LDAP connection object for the current thread.
        """
        self._ldap_objects[threading.current_thread()] = obj

    def remove_connection(self) -> None:
        del self._ldap_objects[threading.current_thread()]

    @property
    def connection(self) -> Any:
        """
        The current thread's LDAP connection object.
        """
        return self._ldap_objects[threading.current_thread()]

    def _connect(self, key: str, dn: str | None = None, password: str | None = None) -> Any:
        """
        Create and return a new bound LDAP connection object.

        Bind credentials are, in order of preference: the ``dn`` and
        ``password`` passed in, those accepted by the last successful
        :py:meth:`bind`, and the ``user`` and ``password`` from the server
        configuration.

        Args:
            key: "read" or "write"
            dn: Optional bind DN.
            password: Optional password.

        Raises:
            ValueError: If the ``tls_verify`` value in the configuration is invalid.
            OSError: If the CA Certificate file is provided but does not exist.
            ldap.LDAPError: the connection or bind failed

        Returns:
            A connected LDAPObject.

        """
        config = self.server_config(key)
        if not dn:
            if self._credentials:
                dn, password = self._credentials
            else:
                dn = config.get("user", "")
                password = config.get("password", "")
        ldap_object = ldap.initialize(config["url"])
        ldap_object.set_option(
            ldap.OPT_REFERRALS, 1 if config.get("follow_referrals", False) else 0
        )
        ldap_object.set_option(
            ldap.OPT_NETWORK_TIMEOUT, float(config.get("timeout", 15.0))
        )
        tls_verify = config.get("tls_verify", "never")
        if tls_verify == "never":
            ldap_object.set_option(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_NEVER)
        elif tls_verify == "always":
            ldap_object.set_option(ldap.OPT_X_TLS_REQUIRE_CERT, ldap.OPT_X_TLS_DEMAND)
        else:
            msg = f"Invalid tls_verify value: {tls_verify}"
            raise ValueError(msg)
        if tls_ca_certfile := config.get("tls_ca_certfile", None):
            if not Path(tls_ca_certfile).is_file():
                msg = f"CA Certificate file does not exist: {tls_ca_certfile}"
                raise OSError(msg)
            ldap_object.set_option(ldap.OPT_X_TLS_CACERTFILE, tls_ca_certfile)
        ldap_object.set_option(ldap.OPT_X_TLS_NEWCTX, 0)
        if config.get("use_starttls", True):
            ldap_object.start_tls_s()
        ldap_object.simple_bind_s(dn, password)
        return ldap_object

    def connect(self, key: str, dn: str | None = None, password: str | None = None) -> None:
        """
        Set the per-thread LDAP connection object. Used by the @atomic decorator.
        """
        self.set_connection(self._connect(key, dn=dn, password=password))

    def disconnect(self) -> None:
        """
        Unbind and forget the current thread's LDAP connection.
        """
        self.connection.unbind_s()
        self.remove_connection()

    def bind(self, principal: str, credential: str) -> bool:
        """
        Check ``principal`` and ``credential`` against the directory.

        On success, every connection this mapper opens from then on binds as
        ``principal``.

        Args:
            principal: the DN to bind as
            credential: its password

        Returns:
            ``True`` if the bind succeeded, ``False`` otherwise.  On failure the
            reason is available from :py:attr:`last_error`.

        """
        try:
            connection = self._connect("read", dn=principal, password=credential)
        except ldap.INVALID_CREDENTIALS as e:
            self.logger.warning("auth.invalid_credentials user=%s", principal)
            msg = f"Bind as {principal} failed"
            self._record(DirectoryConnectionError(msg, ldap_error_text(e)), "LdapMapper.bind")
            return False
        except ldap.LDAPError as e:
            msg = f"Unable to connect to server {self.server_config('read').get('url')}"
            self._record(DirectoryConnectionError(msg, ldap_error_text(e)), "LdapMapper.bind")
            return False
        connection.unbind_s()
        self._credentials = (principal, credential)
        self.logger.info("auth.success user=%s", principal)
        return True

    @property
    def is_bound(self) -> bool:
        """``True`` once :py:meth:`bind` has succeeded."""
        return self._credentials is not None

    def who_am_i(self) -> str | None:
        """
        Ask the server who we are bound as (RFC 4532).

        Returns:
            An authorization id like ``"dn:uid=jdoe,ou=people,dc=example,dc=com"``,
            or ``None`` if the server could not tell us.

        """
        try:
            return self._who_am_i()
        except LdapMapperError as e:
            self._record(e, "LdapMapper.who_am_i")
            return None

    @atomic(key="read")
    def _who_am_i(self) -> str:
        try:
            return self.connection.whoami_s()
        except ldap.LDAPError as e:
            msg = "Who am I request failed"
            raise ReadError(msg, ldap_error_text(e)) from e

    # -----------------------
    # Error records
    # -----------------------

    def _record(self, exc: LdapMapperError, source: str) -> Result:
        result = Result.failure(exc, source)
        self._last_errors[threading.current_thread()] = result.error  # type: ignore[assignment]
        if not isinstance(exc, NoResults):
            self.logger.warning("%s.failed error=%s", source, exc)
        return result

    @property
    def last_error(self) -> ErrorRecord | None:
        """
        The most recent failure recorded on the current thread.
        """
        return self._last_errors.get(threading.current_thread())

    def clear_error(self) -> None:
        self._last_errors.pop(threading.current_thread(), None)

    # -----------------------
    # Searches
    # -----------------------

    @atomic(key="read")
    def search(
        self,
        searchfilter: str,
        attributes: list[str] | None = None,
        basedn: str | None = None,
        scope: int = ldap.SCOPE_SUBTREE,
        sort_control: ServerSideSortControl | None = None,
    ) -> list[LDAPData]:
        """
        Search the LDAP server for objects matching the given filter.

        Args:
            searchfilter: The LDAP search filter string.
            attributes: List of attributes to retrieve.  All user attributes
                if empty.
            basedn: The base DN to search from.
            scope: LDAP search scope.
            sort_control: Server-side sort control.

        Raises:
            ldap.LDAPError: the search failed

        Returns:
            List of LDAPData tuples (dn, attrs).

        """
        if basedn is None:
            basedn = self.basedn
        attrlist = attribute_list(attributes or [])
        self.logger.debug(
            "ldapmapper.search basedn=%s filter=%s attributes=%s",
            basedn,
            searchfilter,
            attrlist,
        )
        if sort_control:
            msgid = self.connection.search_ext(
                basedn, scope, searchfilter, attrlist, serverctrls=[sort_control]
            )
            _, data, _, _ = self.connection.result3(msgid)
        else:
            data = self.connection.search_s(
                basedn, scope, filterstr=searchfilter, attrlist=attrlist
            )
        # We have to filter out any references that AD puts in
        return [obj for obj in data if is_entry(obj)]

    def _check_server_sorting_support(self) -> bool:
        return LdapServerSchema.check_server_sorting_support(
            self.connection, self.cache_key
        )

    def _search_entries(
        self,
        searchfilter: str,
        fields: list[str],
        basedn: str,
        order: str | None = None,
    ) -> list[LDAPData]:
        """
        Run a search, translating python-ldap failures into ours, and sort
        the entries by ``order``.  Must be called with a connection open.
        """
        try:
            sort_control = None
            if order and self._check_server_sorting_support():
                sort_control = ServerSideSortControl(order)
            entries = self.search(
                searchfilter, fields, basedn=basedn, sort_control=sort_control
            )
        except ldap.NO_SUCH_OBJECT as e:
            msg = "No records found"
            raise NoResults(msg) from e
        except (ldap.SERVER_DOWN, ldap.CONNECT_ERROR) as e:
            msg = f"Lost connection while searching {basedn}"
            raise DirectoryConnectionError(msg, ldap_error_text(e)) from e
        except ldap.LDAPError as e:
            msg = f"Search of {basedn} for {searchfilter} failed"
            raise SearchError(msg, ldap_error_text(e)) from e
        if order and sort_control is None:
            entries = sort_entries(entries, order)
        return entries

    def _select(self, fields: list[str] | tuple[str, ...] | str | None) -> list[str]:
        """
        The attributes to ask for: all of them if the caller named none,
        otherwise the caller's plus our defaults.
        """
        if not split_fields(fields):
            return []
        return select_fields(fields, self.default_fields)

    # -----------------------
    # Queries
    # -----------------------

    def query(self, basedn: str | None = None) -> Query:
        """
        Start a chainable query, optionally rooted somewhere other than our
        base DN.
        """
        return Query(self, QueryIntent(basedn=basedn))

    def find(
        self,
        query_type: str = ALL,
        intent: QueryIntent | Mapping[str, Any] | None = None,
        basedn: str | None = None,
    ) -> Result:
        """
        Find records.

        ``intent`` may be a :py:class:`~ldapmapper.query.QueryIntent` or a dict
        with any of the keys ``conditions``, ``combine``, ``fields``,
        ``limit``, ``order``, ``belongs_to``, ``has_many`` and ``basedn``::

            mapper.find("first", {"conditions": "uid=jdoe"})
            mapper.find("all", {
                "conditions": {"objectClass": "posixAccount", "loginShell": "/bin/zsh"},
                "combine": "and",
                "fields": ["uid", "cn", "memberOf"],
                "belongs_to": {"on": {"memberOf": "dn"}, "base": "ou=Groups,dc=example,dc=com"},
            })

        What ``Result.value`` holds depends on ``query_type``:

        * ``first``: one labelled record, ``{"Person": {...}}``
        * ``all``: a list of labelled records
        * ``count``: the number of matching entries
        * ``list``: ``{key value: first selected field's value}``

        Args:
            query_type: one of ``first``, ``all``, ``count`` or ``list``
            intent: what to search for
            basedn: where to search.  Overrides the intent's ``basedn`` and our
                own.

        Raises:
            InvalidQueryType: ``query_type`` is not one we know
            MalformedDnError: the search base can't be parsed
            ValueError: ``intent`` is malformed

        Returns:
            A :py:class:`~ldapmapper.results.Result`.  When nothing matched,
            ``result.no_results`` is ``True``.

        """
        if query_type not in QUERY_TYPES:
            msg = "Find type must be: first, all, count, or list"
            raise InvalidQueryType(msg)
        intent = replace(QueryIntent.from_value(intent), type=query_type)
        if basedn:
            intent = replace(intent, basedn=basedn)
        base = intent.basedn or self.basedn
        label = base_label(base)  # type: ignore[arg-type]
        searchfilter = compile_filter(intent.conditions, combine=intent.combine)
        fields = self._select(intent.fields)
        if query_type == LIST:
            key_attribute = self.list_keys.get(label.lower())
            if fields and key_attribute and key_attribute.lower() not in (
                f.lower() for f in fields
            ):
                fields.append(key_attribute)
        try:
            value = self._find(intent, base, label, searchfilter, fields)
        except LdapMapperError as e:
            return self._record(e, "LdapMapper.find")
        return Result.success(value)

    @atomic(key="read")
    def _find(
        self,
        intent: QueryIntent,
        basedn: str,
        label: str,
        searchfilter: str,
        fields: list[str],
    ) -> Any:
        order = intent.order if intent.type != COUNT else None
        entries = self._search_entries(searchfilter, fields, basedn, order=order)
        limit = intent.effective_limit
        if intent.type == COUNT:
            return min(len(entries), limit) if limit else len(entries)
        if limit:
            entries = entries[:limit]
        results = normalize(entries, label)
        if intent.type == LIST:
            return self._build_list(intent, results, label)
        if intent.belongs_to:
            results = self.resolver.resolve_belongs_to(results, intent.belongs_to)
        if intent.has_many:
            results = self.resolver.resolve_has_many(results, intent.has_many)
        if intent.type == FIRST:
            return results[0]
        return results

    def _build_list(
        self, intent: QueryIntent, results: list[ShapedRecord], label: str
    ) -> dict[Any, Any]:
        """
        Build ``{key: display value}`` from normalized results, for select
        fields and link lists.  The key attribute depends on what we searched
        for (``uid`` for people, ``cn`` for groups by default); entries
        without one are keyed by DN.
        """
        key_attribute = self.list_keys.get(label.lower())
        display = intent.fields[0].lower() if intent.fields else None
        out: dict[Any, Any] = {}
        for shaped in results:
            record = next(iter(shaped.values()))
            key = record.get(key_attribute.lower()) if key_attribute else None
            if key is None:
                key = record["dn"]
            if isinstance(key, list):
                key = key[0]
            value = record.get(display, "") if display else ""
            if isinstance(value, list):
                value = value[0]
            out[key] = value
        return out

    def find_by(self, attribute: str, value: Any, basedn: str | None = None) -> Result:
        """
        Return the first record whose ``attribute`` equals ``value``.
        """
        return self.find(FIRST, {"conditions": {attribute: value}}, basedn=basedn)

    def find_all_by(
        self, attribute: str, value: Any, basedn: str | None = None
    ) -> Result:
        """
        Return every record whose ``attribute`` equals ``value``.
        """
        return self.find(ALL, {"conditions": {attribute: value}}, basedn=basedn)

    def list_dn(
        self,
        dn: str,
        conditions: Mapping[str, Any] | str | None = None,
        fields: list[str] | str | None = None,
    ) -> Result:
        """
        Return every record under ``dn`` matching ``conditions``.
        """
        return self.find(
            ALL, QueryIntent(conditions=conditions, fields=fields or ()), basedn=dn
        )

    def find_records(
        self,
        searchfilter: str,
        basedn: str | None = None,
        fields: list[str] | None = None,
    ) -> Result:
        """
        Search with a ready-made filter and return flat (unlabelled) records.
        Used for relationship lookups.
        """
        try:
            records = self._find_records(searchfilter, basedn or self.basedn, fields)
        except LdapMapperError as e:
            return self._record(e, "LdapMapper.find_records")
        return Result.success(records)

    @atomic(key="read")
    def _find_records(
        self, searchfilter: str, basedn: str, fields: list[str] | None
    ) -> list[Record]:
        entries = self._search_entries(searchfilter, self._select(fields), basedn)
        records = [normalize_entry(entry) for entry in entries]
        if not records:
            msg = "No records found"
            raise NoResults(msg)
        return records

    def find_by_dn(self, dn: str, fields: list[str] | None = None) -> Result:
        """
        Read one entry by its DN.

        Args:
            dn: the entry to read

        Keyword Args:
            fields: attributes to return.  All user attributes if not given.

        Returns:
            A :py:class:`~ldapmapper.results.Result` holding a flat record with
            ``dn`` set to ``dn``.

        """
        try:
            record = self._read(dn, fields)
        except LdapMapperError as e:
            return self._record(e, "LdapMapper.find_by_dn")
        return Result.success(record)

    @atomic(key="read")
    def _read(self, dn: str, fields: list[str] | None) -> Record:
        try:
            entries = self.search(
                MATCH_ALL, self._select(fields), basedn=dn, scope=ldap.SCOPE_BASE
            )
        except ldap.NO_SUCH_OBJECT as e:
            msg = f"No entry at {dn}"
            raise NoResults(msg) from e
        except ldap.LDAPError as e:
            msg = f"Unable to read {dn}"
            raise ReadError(msg, ldap_error_text(e)) from e
        if not entries:
            msg = f"No entry at {dn}"
            raise NoResults(msg)
        record = normalize_entry(entries[0])
        record["dn"] = dn
        return record

    def dn_exists(self, dn: str, searchfilter: str = MATCH_ALL) -> bool:
        """
        Return ``True`` if there is an entry at ``dn`` matching ``searchfilter``.
        """
        try:
            return self._dn_exists(dn, searchfilter)
        except LdapMapperError as e:
            self._record(e, "LdapMapper.dn_exists")
            return False

    @atomic(key="read")
    def _dn_exists(self, dn: str, searchfilter: str = MATCH_ALL) -> bool:
        try:
            entries = self.search(searchfilter, [], basedn=dn, scope=ldap.SCOPE_BASE)
        except ldap.NO_SUCH_OBJECT:
            return False
        except ldap.LDAPError as e:
            msg = f"Unable to read {dn}"
            raise ReadError(msg, ldap_error_text(e)) from e
        return len(entries) > 0

    # -----------------------
    # Schema and writes
    # -----------------------

    def _schema_attributes(self) -> dict[str, str] | None:
        """
        The attribute map of our server's schema, or ``None`` if it can't be
        read.  Must be called with a connection open.

        Raises:
            DirectoryConnectionError: we lost the server while reading the
                root DSE

        """
        try:
            return LdapServerSchema.get_attribute_types(self.connection, self.cache_key)
        except SchemaFetchError as e:
            self.logger.warning(
                "ldapmapper.schema.unavailable server=%s error=%s", self.cache_key, e
            )
            return None
        except ldap.LDAPError as e:
            msg = "Lost connection while reading the schema"
            raise DirectoryConnectionError(msg, ldap_error_text(e)) from e

    def schema_attributes(self) -> dict[str, str] | None:
        """
        Return the server's attribute name to syntax OID map, or ``None`` if
        the schema can't be read.  Connection failures are recorded in
        :py:attr:`last_error`.
        """
        try:
            return self._read_schema_attributes()
        except LdapMapperError as e:
            self._record(e, "LdapMapper.schema_attributes")
            return None

    @atomic(key="read")
    def _read_schema_attributes(self) -> dict[str, str] | None:
        return self._schema_attributes()

    def _writable(
        self, data: Mapping[str, Any], strict: bool, schema: dict[str, str] | None
    ) -> dict[str, Any]:
        """
        Drop attributes the schema doesn't know about, or refuse them in
        strict mode.  Without a schema everything is passed through.
        """
        if schema is None:
            return dict(data)
        out: dict[str, Any] = {}
        for key, value in data.items():
            if key.lower() not in schema:
                if strict:
                    msg = f"Attribute {{{key}}} does not exist and strict mode is active"
                    raise SchemaViolation(msg)
                self.logger.debug("ldapmapper.write.dropped attribute=%s", key)
                continue
            out[key] = value
        return out

    def save(self, dn: str, data: Mapping[str, Any], strict: bool = False) -> Result:
        """
        Add a new entry.

        Args:
            dn: the DN of the new entry
            data: its attributes
            strict: refuse attributes the schema doesn't define, instead of
                silently dropping them

        Returns:
            A :py:class:`~ldapmapper.results.Result` holding ``dn``.

        """
        if not dn or not isinstance(data, Mapping):
            return self._record(WriteError("Input values empty"), "LdapMapper.save")
        try:
            self._save(dn, data, strict)
        except LdapMapperError as e:
            return self._record(e, "LdapMapper.save")
        return Result.success(dn)

    @atomic(key="write")
    def _save(self, dn: str, data: Mapping[str, Any], strict: bool) -> None:
        data = self._writable(data, strict, self._schema_attributes())
        if self._dn_exists(dn):
            msg = "DN already exists"
            raise WriteError(msg)
        try:
            self.connection.add_s(dn, Modlist().add(data))
        except ldap.LDAPError as e:
            msg = f"Unable to add {dn}"
            raise WriteError(msg, ldap_error_text(e)) from e
        self.logger.info("ldapmapper.save.success dn=%s", dn)

    def update(self, dn: str, data: Mapping[str, Any], strict: bool = False) -> Result:
        """
        Replace attributes of an existing entry.  Attributes set to ``None``
        or ``[]`` are removed.

        Args:
            dn: the entry to change
            data: the attributes to replace
            strict: refuse attributes the schema doesn't define, instead of
                silently dropping them

        Returns:
            A :py:class:`~ldapmapper.results.Result` holding ``dn``.

        """
        if not dn or not isinstance(data, Mapping):
            return self._record(WriteError("Input values empty"), "LdapMapper.update")
        try:
            self._update(dn, data, strict)
        except LdapMapperError as e:
            return self._record(e, "LdapMapper.update")
        return Result.success(dn)

    @atomic(key="write")
    def _update(self, dn: str, data: Mapping[str, Any], strict: bool) -> None:
        data = self._writable(data, strict, self._schema_attributes())
        _modlist = Modlist().replace(data)
        if not _modlist:
            self.logger.debug("ldapmapper.update.no-changes dn=%s", dn)
            return
        try:
            self.connection.modify_s(dn, _modlist)
        except ldap.LDAPError as e:
            msg = f"Unable to modify {dn}"
            raise WriteError(msg, ldap_error_text(e)) from e
        self.logger.info("ldapmapper.update.success dn=%s", dn)

    def delete(self, dn: str) -> Result:
        """
        Delete the entry at ``dn``.

        Returns:
            A :py:class:`~ldapmapper.results.Result` holding ``True``.

        """
        try:
            self._delete(dn)
        except LdapMapperError as e:
            return self._record(e, "LdapMapper.delete")
        return Result.success(True)

    @atomic(key="write")
    def _delete(self, dn: str) -> None:
        try:
            self.connection.delete_s(dn)
        except ldap.LDAPError as e:
            msg = f"Unable to delete {dn}"
            raise WriteError(msg, ldap_error_text(e)) from e
        self.logger.info("ldapmapper.delete.success dn=%s", dn)
