# storecast/models/domain/directory_domain.py
"""
Directory Domain Models
Accounts resolved from the platform's user directory and the result of
matching operator-supplied store identifiers against them.
"""

from dataclasses import dataclass, field


@dataclass(slots=True)
class DirectoryAccount:
    """One resolvable person in the external directory."""

    account_id: str
    store_id: str
    display_name: str = ""

    @classmethod
    def from_user(cls, user: dict, attribute_key: str) -> "DirectoryAccount | None":
        """Build from a directory user record; None when the store field is missing."""
        store_id = (user.get("profile") or {}).get(attribute_key)
        if store_id is None or str(store_id).strip() == "":
            return None

        first = user.get("firstName") or ""
        last = user.get("lastName") or ""
        return cls(
            account_id=str(user.get("id")),
            store_id=str(store_id).strip(),
            display_name=f"{first} {last}".strip(),
        )


@dataclass(slots=True)
class ResolutionResult:
    """Partition of requested identifiers into resolved accounts and misses."""

    resolved: list[DirectoryAccount] = field(default_factory=list)
    unresolved: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.resolved) + len(self.unresolved)

    def account_ids(self) -> list[str]:
        return [account.account_id for account in self.resolved]

    def store_ids(self) -> list[str]:
        return [account.store_id for account in self.resolved]
