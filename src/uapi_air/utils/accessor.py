# uapi_air/utils/accessor.py
"""
Navigation helpers for decoded uAPI responses.

The XML decoder turns a SOAP body into a nested mapping (a "DecodedNode"):
attributes and child elements share one dict, an element holding both text
and attributes keeps its text under ``'_'``, and a repeated element becomes a
list while a single occurrence does not. Nothing in the decoded tree tells a
caller whether a key *may* repeat, so every repeatable element must go
through as_list() regardless of how many occurrences a sample payload shows.

None of these helpers raise for missing data; require() is the single place
that turns a missing mandatory node into a parsing error.
"""

from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from ..errors import AirError, ErrorKind

# A decoded XML node: str leaves, nested nodes, or lists of nodes
DecodedNode = dict[str, Any]

# Key under which element text is stored when the element also has attributes
TEXT_KEY: str = '_'


def as_list(node: Any) -> list[Any]:
    """
    Normalize a one-or-many value into a list.

    Args:
        node: None, a single node/scalar, or a sequence of nodes.

    Returns:
        [] for None, the items of a list/tuple, otherwise [node].

    Example:
        >>> as_list(None)
        []
        >>> as_list({'Key': '1'})
        [{'Key': '1'}]
        >>> as_list([{'Key': '1'}])
        [{'Key': '1'}]
    """
    if node is None:
        return []
    if isinstance(node, (list, tuple)):
        return list(node)
    return [node]


def first(node: Any) -> Any:
    """Return the first item of a one-or-many value, or None when empty."""
    items: list[Any] = as_list(node)
    return items[0] if items else None


def _leaf(value: Any) -> Any:
    # Unwrap single-element lists and {'_': text} wrappers down to a value
    while isinstance(value, list) and len(value) == 1:
        value = value[0]
    if isinstance(value, Mapping) and TEXT_KEY in value:
        return value[TEXT_KEY]
    return value


def _split_path(path: str | Sequence[str]) -> list[str]:
    if isinstance(path, str):
        return path.split('/') if '/' in path else [path]
    return list(path)


def get(node: Any, path: str | Sequence[str], default: Any = None) -> Any:
    """
    Walk ``path`` inside ``node`` and return whatever sits at the end.

    Single-element lists met on the way are unwrapped; a multi-element list
    stops the walk (returns ``default``) because the path would be ambiguous.
    """
    current: Any = node
    for key in _split_path(path):
        while isinstance(current, list) and len(current) == 1:
            current = current[0]
        if not isinstance(current, Mapping) or key not in current:
            return default
        current = current[key]
    return default if current is None else current


def text(node: Any, path: str | Sequence[str], default: str | None = None) -> str | None:
    """
    Return the leaf string at ``path`` inside ``node``.

    Args:
        node: A DecodedNode (or None).
        path: A key, a list of keys, or a '/'-separated key string.
        default: Returned when any path segment is absent or the leaf is not
                 a string.

    Returns:
        The leaf text, or ``default``.
    """
    value: Any = _leaf(get(node, path))
    if isinstance(value, str):
        return value
    return default


def attr(node: Any, name: str, default: str | None = None) -> str | None:
    """Return the attribute ``name`` of ``node`` (decoded as a sibling leaf)."""
    if not isinstance(node, Mapping):
        return default
    value: Any = node.get(name)
    return value if isinstance(value, str) else default


def node_text(node: Any) -> str | None:
    """Return the text content of an element, whether bare or wrapped."""
    value: Any = _leaf(node)
    return value if isinstance(value, str) else None


def merge_leaves(node: Any) -> Any:
    """
    Recursively collapse single-child wrappers into their unwrapped value.

    One-element lists become their element and ``{'_': text}`` becomes
    ``text``. Applied to SOAP fault records before inspection because fault
    detail subtrees are deeply namespace-qualified.

    Example:
        >>> merge_leaves({'a': [{'_': 'x'}], 'b': [{'c': ['1']}]})
        {'a': 'x', 'b': {'c': '1'}}
    """
    if isinstance(node, list):
        if len(node) == 1:
            return merge_leaves(node[0])
        return [merge_leaves(item) for item in node]
    if isinstance(node, Mapping):
        if set(node.keys()) == {TEXT_KEY}:
            return node[TEXT_KEY]
        return {key: merge_leaves(value) for key, value in node.items()}
    return node


def index_by_key(nodes: Any, key: str = 'Key') -> dict[str, DecodedNode]:
    """
    Index a one-or-many collection of nodes by one of their attributes.

    Nodes without the attribute are skipped. Later duplicates do not replace
    earlier ones, so the first occurrence in document order wins.
    """
    index: dict[str, DecodedNode] = {}
    for item in as_list(nodes):
        ref: str | None = attr(item, key)
        if ref is not None and ref not in index:
            index[ref] = item
    return index


def ns(version: str, prefix: str, name: str) -> str:
    """
    Build a version-qualified key, e.g. ``ns('v52_0', 'common', 'Code')``.

    Returns:
        'common_v52_0:Code'
    """
    return f'{prefix}_{version}:{name}'


def collect(nodes: Iterable[Any], path: str | Sequence[str]) -> list[Any]:
    """Flatten the one-or-many children at ``path`` of every node in ``nodes``."""
    result: list[Any] = []
    for item in nodes:
        result.extend(as_list(get(item, path)))
    return result


def require(
    node: Any,
    path: str | Sequence[str],
    kind: ErrorKind = ErrorKind.RESPONSE_DATA_MISSING,
) -> Any:
    """
    Return the value at ``path`` or raise a parsing error naming the path.

    This is the single "required node missing" path used by normalizers.
    """
    value: Any = get(node, path)
    if value is None or value == [] or value == '':
        missing: str = path if isinstance(path, str) else '/'.join(path)
        raise AirError(kind, {'missing': missing})
    return value
