"""
Belongs-to and has-many relationship resolution.

A relationship says "take the value of ``local_key`` on each of my records and
find the entries under ``base`` whose ``remote_attribute`` equals it"::

    RelationSpec(on={"memberOf": "dn"}, base="ou=Groups,dc=example,dc=com")
    RelationSpec(on={"uid": "memberUid"}, base="ou=Groups,dc=example,dc=com")

When ``remote_attribute`` is ``dn`` the local values are DNs and are read
directly; otherwise we search ``base`` for equality matches.  What we find is
attached to each record under the first component of ``base`` (``"Groups"``
above).
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .dn import base_label
from .fields import split_fields
from .filters import equality_filter
from .results import Result
from .typing import ShapedRecord

if TYPE_CHECKING:
    from .mapper import LdapMapper

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelationSpec:
    """
    A declared relationship between the queried subtree and another one.

    Args:
        on: exactly one ``{local_key: remote_attribute}`` entry
        base: the DN of the related subtree

    Keyword Args:
        fields: attributes to fetch for related records.  All user attributes
            if not given.

    Raises:
        ValueError: ``on`` does not have exactly one entry, or ``base`` is
            empty

    """

    on: Mapping[str, str]
    base: str
    fields: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.on, Mapping) or len(self.on) != 1:
            msg = 'A relationship needs exactly one "on" entry: {local_key: remote_attribute}'
            raise ValueError(msg)
        if not self.base:
            msg = 'A relationship needs a "base" DN'
            raise ValueError(msg)
        object.__setattr__(self, "on", dict(self.on))
        object.__setattr__(self, "fields", tuple(split_fields(self.fields)))

    @classmethod
    def from_value(cls, value: "RelationSpec | Mapping[str, Any]") -> "RelationSpec":
        """
        Accept either a :py:class:`RelationSpec` or a dict with ``on``,
        ``base`` and optionally ``fields`` keys.
        """
        if isinstance(value, RelationSpec):
            return value
        try:
            return cls(on=value["on"], base=value["base"], fields=value.get("fields") or ())
        except KeyError as e:
            msg = f'A relationship is missing its "{e.args[0]}" key'
            raise ValueError(msg) from e

    @property
    def local_key(self) -> str:
        """The attribute on our records, lower-cased to match normalized keys."""
        return next(iter(self.on)).lower()

    @property
    def remote_attribute(self) -> str:
        return next(iter(self.on.values()))

    @property
    def label(self) -> str:
        """The key related records are attached under."""
        return base_label(self.base)


class RelationshipResolver:
    """
    Attach related records to normalized query results.

    Lookups go through ``mapper`` one at a time, in the order records and
    their values are iterated, on whatever connection the mapper has open.

    Args:
        mapper: the mapper to issue the follow-up lookups with

    """

    def __init__(self, mapper: "LdapMapper") -> None:
        self.mapper = mapper

    def _lookup(self, spec: RelationSpec, value: Any) -> Any:
        """
        Resolve one local value.  Returns a record for a by-DN lookup, a list
        of records for a search, or ``None`` if nothing was found.
        """
        fields = list(spec.fields)
        if spec.remote_attribute.lower() == "dn":
            result: Result = self.mapper.find_by_dn(value, fields=fields)
        else:
            result = self.mapper.find_records(
                equality_filter(spec.remote_attribute, value),
                basedn=spec.base,
                fields=fields,
            )
        if not result.ok:
            if not result.no_results:
                logger.warning(
                    "ldapmapper.relations.lookup-failed base=%s value=%s error=%s",
                    spec.base,
                    value,
                    result.error.message if result.error else "",
                )
            return None
        return result.value

    def _records(self, results: list[ShapedRecord]):
        # The labelled payload is always the first key; later keys are
        # relationships attached by an earlier pass.
        for shaped in results:
            if not shaped:
                continue
            label, record = next(iter(shaped.items()))
            if isinstance(record, dict):
                yield shaped, label, record

    def resolve_belongs_to(
        self, results: list[ShapedRecord], spec: RelationSpec
    ) -> list[ShapedRecord]:
        """
        Attach the records each result belongs to.

        For a multi-valued local attribute every value is looked up and all
        matches are accumulated into one list.

        Args:
            results: labelled records as returned by
                :py:func:`~ldapmapper.normalize.normalize`
            spec: the relationship

        Returns:
            ``results``, with matches attached in place.

        """
        label = spec.label
        for shaped, _, record in self._records(results):
            if spec.local_key not in record:
                continue
            value = record[spec.local_key]
            if isinstance(value, list):
                found: list[Any] = []
                for item in value:
                    match = self._lookup(spec, item)
                    if isinstance(match, list):
                        found.extend(match)
                    elif match:
                        found.append(match)
            else:
                found = self._lookup(spec, value)
            if found:
                shaped[label] = found
        return results

    def resolve_has_many(
        self, results: list[ShapedRecord], spec: RelationSpec
    ) -> list[ShapedRecord]:
        """
        Attach the records each result has many of.

        For a multi-valued local attribute every value is looked up, but only
        the outcome of the last lookup is kept.

        Args:
            results: labelled records as returned by
                :py:func:`~ldapmapper.normalize.normalize`
            spec: the relationship

        Returns:
            ``results``, with matches attached in place.

        """
        label = spec.label
        for shaped, _, record in self._records(results):
            if spec.local_key not in record:
                continue
            value = record[spec.local_key]
            found = None
            if isinstance(value, list):
                for item in value:
                    found = self._lookup(spec, item)
            else:
                found = self._lookup(spec, value)
            if found:
                shaped[label] = found
        return results
