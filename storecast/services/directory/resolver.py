"""
Store identifier resolution against a pre-built directory index.
Pure in-memory functions, no network calls.
"""

import re
from collections.abc import Iterable, Mapping

from storecast.models.domain.directory_domain import DirectoryAccount, ResolutionResult

_SEPARATORS = re.compile(r"[\s,]+")


def normalize_store_ids(requested: Iterable) -> list[str]:
    """
    Split entries on whitespace/comma runs, drop empties and de-duplicate
    while keeping first-seen order.
    """
    seen: dict[str, None] = {}
    for entry in requested:
        if entry is None:
            continue
        for token in _SEPARATORS.split(str(entry)):
            if token:
                seen.setdefault(token, None)
    return list(seen)


def resolve(requested: Iterable, index: Mapping[str, DirectoryAccount]) -> ResolutionResult:
    """Classify each normalized identifier as resolved or unresolved, in input order."""
    result = ResolutionResult()
    for store_id in normalize_store_ids(requested):
        account = index.get(store_id)
        if account is not None:
            result.resolved.append(account)
        else:
            result.unresolved.append(store_id)
    return result
