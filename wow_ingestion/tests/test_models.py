"""
Unit tests for the game-data record types.
"""

import pytest

from wow_ingestion.errors import DecodeError, UnknownRealmError
from wow_ingestion.models import Auction, ConnectedRealm, ConnectedRealmIndex, TimeLeft


class TestTimeLeft:
    """Test decoding of the auction duration field."""

    def test_known_values(self):
        """Test all four upstream values decode."""
        for value in ("SHORT", "MEDIUM", "LONG", "VERY_LONG"):
            assert TimeLeft.parse(value).value == value

    def test_unknown_value(self):
        """Test other values are a decode error, not a default."""
        for value in ("short", "", None, "EXTREMELY_LONG"):
            with pytest.raises(DecodeError):
                TimeLeft.parse(value)


class TestConnectedRealmIndex:
    """Test the realm-name index."""

    def setup_method(self):
        self.stormrage = ConnectedRealm(id=60, member_realm_names=("Stormrage",))
        self.zuljin = ConnectedRealm(id=61, member_realm_names=("Zul'jin", "Garona"))
        self.index = ConnectedRealmIndex([self.stormrage, self.zuljin])

    def test_keys_are_lower_cased(self):
        """Test names are normalised when the index is built."""
        assert sorted(self.index) == ["garona", "stormrage", "zul'jin"]

    def test_lookup_is_case_insensitive(self):
        """Test lookups normalise the name too."""
        assert self.index["ZUL'JIN"] is self.zuljin
        assert self.index.get_realm("Garona") is self.zuljin

    def test_members_share_one_realm(self):
        """Test all members map to the same ConnectedRealm."""
        assert self.index["garona"] is self.index["zul'jin"]
        assert self.index.connected_realms() == (self.stormrage, self.zuljin)

    def test_unknown_realm(self):
        """Test unknown names raise UnknownRealmError, which is also a KeyError."""
        with pytest.raises(UnknownRealmError) as exc_info:
            self.index.get_realm("Illidan")
        assert "Illidan" in str(exc_info.value)
        assert isinstance(exc_info.value, KeyError)
        assert self.index.get("Illidan") is None

    def test_non_string_key(self):
        """Test non-string keys behave as missing entries."""
        assert 61 not in self.index
        assert self.index.get(61) is None
        with pytest.raises(KeyError):
            self.index[61]


class TestAuction:
    """Test staging row layout."""

    def test_to_row(self):
        """Test rows list auction, item, quantity, unit price, buyout, time left, realm."""
        auction = Auction(
            realm_id=61,
            auction_id=1,
            item_id=42,
            quantity=3,
            unit_price=100,
            buyout=0,
            bid=0,
            time_left=TimeLeft.SHORT,
        )
        assert auction.to_row() == [1, 42, 3, 100, 0, "SHORT", 61]
