"""Accessible secret set assembly."""
from typing import Iterable, Tuple


def build_accessible_set(
    predefined: Iterable[str],
    org_visible: Iterable[str],
    repo_secrets: Iterable[str],
) -> Tuple[str, ...]:
    """
    Merge every source of secret names into one sorted, deduplicated tuple.

    Names are compared case-sensitively.
    """
    names = set(predefined)
    names.update(org_visible)
    names.update(repo_secrets)
    return tuple(sorted(names))
