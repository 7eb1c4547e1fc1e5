"""
Distinguished name helpers.

These work on the plain comma separated form of a DN.  Escaped commas inside
values are not supported.
"""

from collections.abc import Mapping
from typing import Any

from .exceptions import MalformedDnError


def _components(dn: str) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    if not dn.strip():
        return pairs
    for component in dn.split(","):
        if "=" not in component:
            msg = f'DN component "{component}" in "{dn}" has no "=" separator'
            raise MalformedDnError(msg)
        attribute, value = component.split("=", 1)
        pairs.append((attribute.strip(), value.strip()))
    return pairs


def parse_dn(dn: str, with_attribute_names: bool = True) -> dict[str, Any] | list[str]:
    """
    Split a DN into its components.

    With ``with_attribute_names=True`` you get a mapping of attribute name to
    value.  An attribute that appears more than once maps to a list of its
    values, in order::

        >>> parse_dn("uid=jdoe,ou=people,dc=example,dc=com")
        {'uid': 'jdoe', 'ou': 'people', 'dc': ['example', 'com']}

    With ``with_attribute_names=False`` you get just the values::

        >>> parse_dn("ou=Group,dc=example,dc=com", with_attribute_names=False)
        ['Group', 'example', 'com']

    Args:
        dn: the DN to parse.  The empty DN parses to an empty result.

    Keyword Args:
        with_attribute_names: return a mapping rather than a list of values

    Raises:
        MalformedDnError: a component has no ``=`` in it

    Returns:
        A mapping or a list, as described above.

    """
    pairs = _components(dn)
    if not with_attribute_names:
        return [value for _, value in pairs]
    out: dict[str, Any] = {}
    for attribute, value in pairs:
        if attribute not in out:
            out[attribute] = value
        elif isinstance(out[attribute], list):
            out[attribute].append(value)
        else:
            out[attribute] = [out[attribute], value]
    return out


def build_dn(components: Mapping[str, Any] | str, basedn: str = "") -> str:
    """
    Build a DN from components and a base DN.

    A string ``components`` is taken to be a partial DN already and is just
    joined to ``basedn``.  A mapping is rendered as ``attribute=value`` pairs
    in iteration order; list values render one pair per element.

    Args:
        components: an RDN string like ``"uid=jdoe"``, or a mapping
        basedn: the DN to append

    Returns:
        The full DN.

    """
    if isinstance(components, str):
        parts = [components]
    else:
        parts = []
        for attribute, value in components.items():
            values = value if isinstance(value, list) else [value]
            parts.extend(f"{attribute}={v}" for v in values)
    if basedn:
        parts.append(basedn)
    return ",".join(parts)


def base_label(dn: str) -> str:
    """
    Return the value of the first component of ``dn``: ``"People"`` for
    ``"ou=People,dc=example,dc=com"``.  Used to label result groups.
    """
    values = parse_dn(dn, with_attribute_names=False)
    if not values:
        return ""
    return values[0]
