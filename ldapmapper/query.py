"""
Query intents and the chainable query builder.

A :py:class:`QueryIntent` is an immutable description of one search.  The
:py:class:`Query` builder produces a new intent at every step, so partially
built queries can be shared and reused without one chain leaking into
another::

    people = mapper.query().select("cn, mail").order("cn")
    admins = people.where({"memberOf": "cn=admins,ou=groups,dc=example,dc=com"})
    everyone = people.all()
"""

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any

from .fields import split_fields
from .filters import AND, OR
from .relations import RelationSpec
from .results import Result

if TYPE_CHECKING:
    from .mapper import LdapMapper

FIRST = "first"
ALL = "all"
COUNT = "count"
LIST = "list"
#: The query types :py:meth:`~ldapmapper.mapper.LdapMapper.find` understands.
QUERY_TYPES = (FIRST, ALL, COUNT, LIST)

#: The keys a plain dict query may use.
INTENT_KEYS = (
    "conditions",
    "combine",
    "fields",
    "limit",
    "order",
    "belongs_to",
    "has_many",
    "basedn",
)


@dataclass(frozen=True)
class QueryIntent:
    """
    Everything needed to run one search.

    Keyword Args:
        type: one of :py:data:`QUERY_TYPES`
        conditions: a mapping of attribute to value, or a free-text condition
            string such as ``"uid=jdoe AND objectClass=person"``
        combine: how mapping conditions are joined, ``"and"`` or ``"or"``
        fields: attributes to return.  All user attributes if empty.
        limit: the most entries to return
        order: attribute to sort by, ``-`` prefixed for descending order
        belongs_to: a relationship to resolve on each result
        has_many: a relationship to resolve on each result
        basedn: where to search.  The mapper's base DN if not given.

    Raises:
        ValueError: ``limit`` is not a positive integer, or ``combine`` is not
            ``"and"`` or ``"or"``

    """

    type: str = ALL
    conditions: Mapping[str, Any] | str | None = None
    combine: str = OR
    fields: tuple[str, ...] = field(default_factory=tuple)
    limit: int | None = None
    order: str | None = None
    belongs_to: RelationSpec | None = None
    has_many: RelationSpec | None = None
    basedn: str | None = None

    def __post_init__(self) -> None:
        if self.limit is not None and (
            isinstance(self.limit, bool)
            or not isinstance(self.limit, int)
            or self.limit < 1
        ):
            msg = f"limit must be a positive integer, not {self.limit!r}"
            raise ValueError(msg)
        if self.combine not in (AND, OR):
            msg = f'combine must be "{AND}" or "{OR}", not "{self.combine}"'
            raise ValueError(msg)
        if isinstance(self.conditions, Mapping):
            object.__setattr__(self, "conditions", dict(self.conditions))
        object.__setattr__(self, "fields", tuple(split_fields(self.fields)))
        if self.belongs_to is not None:
            object.__setattr__(
                self, "belongs_to", RelationSpec.from_value(self.belongs_to)
            )
        if self.has_many is not None:
            object.__setattr__(self, "has_many", RelationSpec.from_value(self.has_many))

    @classmethod
    def from_value(
        cls, value: "QueryIntent | Mapping[str, Any] | None" = None
    ) -> "QueryIntent":
        """
        Accept a :py:class:`QueryIntent`, a plain dict using the keys in
        :py:data:`INTENT_KEYS`, or ``None`` for "everything".

        Raises:
            ValueError: the dict has keys we don't know about

        """
        if value is None:
            return cls()
        if isinstance(value, QueryIntent):
            return value
        unknown = set(value) - set(INTENT_KEYS)
        if unknown:
            msg = f"Unknown query keys: {', '.join(sorted(unknown))}"
            raise ValueError(msg)
        kwargs = {key: value[key] for key in INTENT_KEYS if value.get(key) is not None}
        return cls(**kwargs)

    @property
    def effective_limit(self) -> int | None:
        """
        The limit the search will actually use.  ``first`` queries always
        fetch one entry.
        """
        if self.type == FIRST:
            return 1
        return self.limit


class Query:
    """
    Chainable builder for :py:class:`QueryIntent` objects.

    Every method except the terminal ones (:py:meth:`first`, :py:meth:`all`,
    :py:meth:`count`, :py:meth:`as_list`) returns a new :py:class:`Query`.

    Args:
        mapper: the mapper that will run the query

    Keyword Args:
        intent: the intent to start from

    """

    def __init__(
        self, mapper: "LdapMapper", intent: QueryIntent | None = None
    ) -> None:
        self.mapper = mapper
        self.intent: QueryIntent = intent or QueryIntent()

    def _chain(self, **changes: Any) -> "Query":
        return Query(self.mapper, replace(self.intent, **changes))

    def where(
        self, conditions: Mapping[str, Any] | str | None, combine: str = OR
    ) -> "Query":
        """
        Set the search conditions.

        Args:
            conditions: a mapping of attribute to value, or a free-text
                condition string

        Keyword Args:
            combine: ``"and"`` or ``"or"``; how mapping conditions are joined

        """
        return self._chain(conditions=conditions, combine=combine)

    def select(self, fields: list[str] | str) -> "Query":
        """
        Set the attributes to return, as a list or comma separated string.
        """
        return self._chain(fields=tuple(split_fields(fields)))

    def limit(self, limit: int | None) -> "Query":
        return self._chain(limit=limit)

    def order(self, order: str | None) -> "Query":
        return self._chain(order=order)

    def base(self, basedn: str | None) -> "Query":
        """
        Search under ``basedn`` instead of the mapper's base DN.
        """
        return self._chain(basedn=basedn)

    def belongs_to(self, spec: RelationSpec | Mapping[str, Any] | None) -> "Query":
        return self._chain(
            belongs_to=RelationSpec.from_value(spec) if spec is not None else None
        )

    def has_many(self, spec: RelationSpec | Mapping[str, Any] | None) -> "Query":
        return self._chain(
            has_many=RelationSpec.from_value(spec) if spec is not None else None
        )

    def _run(self, query_type: str) -> Result:
        return self.mapper.find(query_type, self.intent)

    def first(self) -> Result:
        """
        Return the first matching record.
        """
        return self._run(FIRST)

    def all(self) -> Result:
        """
        Return every matching record.
        """
        return self._run(ALL)

    def count(self) -> Result:
        """
        Return the number of matching entries.
        """
        return self._run(COUNT)

    def as_list(self) -> Result:
        """
        Return a mapping of each record's key attribute to its first selected
        field, for building option lists.
        """
        return self._run(LIST)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        """
        Iterate over the matching records.  Iterates nothing if the search
        failed or matched nothing; check :py:meth:`all` to tell which.
        """
        result = self.all()
        return iter(result.value if result.ok else [])
