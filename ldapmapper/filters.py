"""
Compile query conditions into LDAP search filter strings.

Conditions come in two flavors:

* a mapping of attribute name to value, combined with AND or OR::

    >>> compile_filter({"cn": "Babs Jensen"})
    '(cn=Babs Jensen)'
    >>> compile_filter({"cn": "a", "sn": "b"}, combine=AND)
    '(&(cn=a)(sn=b))'

* a human readable string of ``attr=value`` clauses separated by ``" AND "``
  or ``" OR "``::

    >>> compile_filter("uid=jdoe AND objectClass=person")
    '(&(uid=jdoe)(objectClass=person))'

Values are passed through verbatim so that wildcards keep working; the only
rewriting done is escaping the parentheses of a term whose own parentheses do
not balance, so the compiled filter is always balanced.
"""

from collections.abc import Mapping
from typing import Any

from ldap_filter import Filter

#: Combine mapping terms with ``&``
AND = "and"
#: Combine mapping terms with ``|``
OR = "or"

#: The filter used when there are no conditions at all.
MATCH_ALL: str = Filter.attribute("objectClass").present().to_string()

AND_SEPARATOR = " AND "
OR_SEPARATOR = " OR "


def is_balanced(text: str) -> bool:
    """
    Return ``True`` if every ``(`` in ``text`` is closed, in order.
    """
    depth = 0
    for char in text:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def balance(text: str) -> str:
    """
    Return ``text`` unchanged if its parentheses balance, otherwise with every
    parenthesis escaped per RFC 4515.
    """
    if is_balanced(text):
        return text
    return text.replace("(", r"\28").replace(")", r"\29")


def _wrap(terms: list[str], combine: str) -> str:
    if len(terms) == 1:
        return terms[0]
    operator = "&" if combine == AND else "|"
    return f"({operator}{''.join(terms)})"


def compile_mapping(conditions: Mapping[str, Any], combine: str = OR) -> str:
    """
    Render a mapping of attribute names to values as an LDAP filter.

    Args:
        conditions: attribute name to value

    Keyword Args:
        combine: :py:data:`AND` or :py:data:`OR`.  Only consulted when there
            are two or more terms.

    Returns:
        An LDAP filter string.

    """
    if not conditions:
        return MATCH_ALL
    terms = [f"({balance(f'{key}={value}')})" for key, value in conditions.items()]
    return _wrap(terms, combine)


def compile_text(text: str) -> str:
    """
    Render a free-text condition as an LDAP filter.

    Only one kind of boolean operator is understood per string.  If both are
    present the string is split on ``" OR "``, so ``"a=1 AND b=2 OR c=3"``
    becomes ``(|(a=1 AND b=2)(c=3))``.

    Args:
        text: something like ``"cn=green AND gidNumber=3242442"``

    Returns:
        An LDAP filter string.

    """
    if not text:
        return MATCH_ALL
    clauses: list[str] | None = None
    combine = AND
    if AND_SEPARATOR in text:
        clauses = text.split(AND_SEPARATOR)
        combine = AND
    if OR_SEPARATOR in text:
        clauses = text.split(OR_SEPARATOR)
        combine = OR
    if clauses is None:
        return f"({balance(text)})"
    terms = [f"({balance(clause)})" for clause in clauses]
    operator = "&" if combine == AND else "|"
    return f"({operator}{''.join(terms)})"


def compile_filter(expr: Mapping[str, Any] | str | None, combine: str = OR) -> str:
    """
    Compile structured or free-text conditions into an LDAP filter.

    Args:
        expr: a mapping of attribute to value, a free-text condition string,
            or ``None``

    Keyword Args:
        combine: how to join the terms of a mapping; :py:data:`AND` or
            :py:data:`OR`.  Free-text conditions carry their own operator.

    Raises:
        ValueError: ``combine`` is neither :py:data:`AND` nor :py:data:`OR`.
        TypeError: ``expr`` is neither a mapping nor a string.

    Returns:
        A parenthesis-balanced LDAP filter string.

    """
    if combine not in (AND, OR):
        msg = f'combine must be "{AND}" or "{OR}", not "{combine}"'
        raise ValueError(msg)
    if not expr:
        return MATCH_ALL
    if isinstance(expr, Mapping):
        return compile_mapping(expr, combine=combine)
    if isinstance(expr, str):
        return compile_text(expr)
    msg = f"Conditions must be a mapping or a string, not {type(expr).__name__}"
    raise TypeError(msg)


def equality_filter(attribute: str, value: Any) -> str:
    """
    Build a single ``(attribute=value)`` term with the value escaped, for
    lookups keyed off values read back from the directory.
    """
    if isinstance(value, bytes):
        value = value.decode("utf-8")
    return Filter.attribute(attribute).equal_to(str(value)).to_string()
