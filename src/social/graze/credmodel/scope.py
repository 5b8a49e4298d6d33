from typing import Any, FrozenSet, Mapping, Optional


def parse_scope(scope: Optional[str]) -> FrozenSet[str]:
    """Split a space-delimited scope string into a set of scope tokens."""
    if not scope:
        return frozenset()
    return frozenset(scope.split())


def granted_scope(token: Any) -> Optional[str]:
    if isinstance(token, Mapping):
        return token.get("scope")
    return getattr(token, "scope", None)


def verify_scope(token: Any, requested: Optional[str]) -> bool:
    """
    Check that every requested scope token was granted to `token`.

    `token` is a record with a `scope` attribute or a mapping with a "scope"
    key. A token with no granted scope never satisfies a request, and neither
    does an empty request. Order and duplicates are irrelevant.
    """
    granted = parse_scope(granted_scope(token))
    wanted = parse_scope(requested)
    if not granted or not wanted:
        return False
    return wanted <= granted
