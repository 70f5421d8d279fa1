"""
Typed records for the game-data API.

Connected realms, auction listings, and items are built fresh on every
invocation from upstream JSON and never mutated afterwards.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, Tuple

from wow_ingestion.errors import DecodeError, UnknownRealmError


class TimeLeft(str, Enum):
    """How long an auction has left. The API makes this deliberately imprecise."""

    SHORT = "SHORT"  # under 2 hours
    MEDIUM = "MEDIUM"  # 2 to 12 hours
    LONG = "LONG"  # 12 to 24 hours
    VERY_LONG = "VERY_LONG"  # over 24 hours

    @classmethod
    def parse(cls, value: object) -> "TimeLeft":
        """
        Decode the upstream free-text field.

        Raises:
            DecodeError: If the value is not one of the four known durations.
        """
        try:
            return cls(value)
        except ValueError:
            raise DecodeError(f"cannot decode {value!r} as TimeLeft") from None


@dataclass(frozen=True)
class ConnectedRealm:
    """A cluster of realms sharing one auction house."""

    id: int
    member_realm_names: Tuple[str, ...]


class ConnectedRealmIndex(Mapping):
    """
    Read-only mapping of realm friendly name to its ConnectedRealm.

    Names are lower-cased both when the index is built and when it is
    queried, so "Zul'jin" and "zul'jin" address the same entry. Several names
    map to the same ConnectedRealm instance.
    """

    def __init__(self, realms: Iterable[ConnectedRealm] = ()) -> None:
        entries: Dict[str, ConnectedRealm] = {}
        for realm in realms:
            for name in realm.member_realm_names:
                entries[name.lower()] = realm
        self._entries = entries

    def __getitem__(self, name: str) -> ConnectedRealm:
        if not isinstance(name, str):
            raise KeyError(name)
        return self._entries[name.lower()]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"ConnectedRealmIndex({self._entries!r})"

    def get_realm(self, name: str) -> ConnectedRealm:
        """
        Look up a connected realm by any member realm's friendly name.

        Raises:
            UnknownRealmError: If no connected realm has a member by that name.
        """
        try:
            return self[name]
        except KeyError:
            raise UnknownRealmError(f"unknown connected realm {name!r}") from None

    def connected_realms(self) -> Tuple[ConnectedRealm, ...]:
        """Distinct connected realms in first-seen order."""
        seen: Dict[int, ConnectedRealm] = {}
        for realm in self._entries.values():
            seen.setdefault(realm.id, realm)
        return tuple(seen.values())


@dataclass(frozen=True)
class Auction:
    """
    A single listing on a connected realm's auction house.

    Commodity listings carry a unit price; everything else carries a buyout
    and/or a bid. Prices are in copper.
    """

    realm_id: int
    auction_id: int
    item_id: int
    quantity: int
    unit_price: int
    buyout: int
    bid: int
    time_left: TimeLeft

    def to_row(self) -> list:
        """Staging CSV row: auction, item, quantity, unit price, buyout, time left, realm."""
        return [
            self.auction_id,
            self.item_id,
            self.quantity,
            self.unit_price,
            self.buyout,
            self.time_left.value,
            self.realm_id,
        ]


@dataclass(frozen=True)
class Item:
    """Minimal representation of an in-game item."""

    id: int
    name: str
    item_class: str
    item_class_id: int
    item_subclass: str
    item_subclass_id: int
