"""
Game-data API client.

Wraps the upstream REST API behind typed calls: connected-realm discovery
(the realm index, then one detail request per connected realm), auction
listings for one connected realm, and single item lookups. All knowledge of
upstream URLs, headers, and JSON shapes lives in this module.

Any failure aborts the whole call; partial results are never returned.
"""

import threading
from typing import Any, Dict, List, Optional

import requests

from wow_ingestion.errors import (
    Cancelled,
    DecodeError,
    InvalidAuctionRecord,
    MalformedReference,
    UpstreamError,
)
from wow_ingestion.models import (
    Auction,
    ConnectedRealm,
    ConnectedRealmIndex,
    Item,
    TimeLeft,
)
from wow_ingestion.utils.logging_utils import log_progress

API_HOST_FORMAT = "https://{region}.api.blizzard.com"
NAMESPACE_HEADER = "Battlenet-Namespace"

# All output is requested in en_US
LOCALE = "en_US"


def parse_realm_id(href: str) -> int:
    """
    Extract the connected realm id from an index link.

    Args:
        href: Link such as 'https://us.api.blizzard.com/data/wow/connected-realm/61?namespace=dynamic-us'

    Returns:
        int: The trailing path segment as an integer

    Raises:
        MalformedReference: If the trailing segment is not numeric.
    """
    path = href.split("?", 1)[0].rstrip("/")
    segment = path.rsplit("/", 1)[-1]
    if not (segment.isascii() and segment.isdigit()):
        raise MalformedReference(
            f"connected realm link {href!r} does not end in a numeric id", href=href
        )
    return int(segment)


def _require_int(record: Dict[str, Any], key: str, default: Optional[int] = None) -> int:
    value = record.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int):
        raise DecodeError(f"auction field {key!r} must be an integer, got {value!r}")
    return value


def parse_auction(raw: Any, realm_id: int) -> Auction:
    """
    Map one raw auction record and enforce the listing invariants.

    Args:
        raw: Auction object from the upstream listing
        realm_id: Connected realm the listing belongs to

    Returns:
        Auction: The validated auction

    Raises:
        DecodeError: If a field is missing or has the wrong type.
        InvalidAuctionRecord: If quantity is not positive, or neither buyout
            nor unit price is set.
    """
    if not isinstance(raw, dict) or not isinstance(raw.get("item"), dict):
        raise DecodeError(f"malformed auction record {raw!r}")

    auction = Auction(
        realm_id=realm_id,
        auction_id=_require_int(raw, "id"),
        item_id=_require_int(raw["item"], "id"),
        quantity=_require_int(raw, "quantity"),
        unit_price=_require_int(raw, "unit_price", 0),
        buyout=_require_int(raw, "buyout", 0),
        bid=_require_int(raw, "bid", 0),
        time_left=TimeLeft.parse(raw.get("time_left")),
    )

    if auction.quantity <= 0:
        raise InvalidAuctionRecord(
            f"auction id {auction.auction_id} of {auction.item_id} has a quantity of {auction.quantity}",
            auction_id=auction.auction_id,
            item_id=auction.item_id,
        )
    if auction.buyout <= 0 and auction.unit_price <= 0:
        raise InvalidAuctionRecord(
            f"auction id {auction.auction_id} of {auction.item_id} has a buyout of 0 and a unit price of 0",
            auction_id=auction.auction_id,
            item_id=auction.item_id,
        )
    return auction


class RealmDataClient:
    """
    Typed access to the game-data API for one region.

    Every request carries the region's dynamic namespace header and the
    fixed output locale.
    """

    def __init__(
        self,
        session: requests.Session,
        region: str,
        timeout: float = 10.0,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        """
        Args:
            session: Authenticated transport from oauth.authenticate()
            region: API region, e.g. 'us'
            timeout: Per-request deadline in seconds
            cancel_event: When set, the next request raises Cancelled
        """
        self.session = session
        self.region = region
        self.api_host = API_HOST_FORMAT.format(region=region)
        self.namespace = f"dynamic-{region}"
        self.timeout = timeout
        self.cancel_event = cancel_event

    def _get_json(self, path: str) -> Any:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise Cancelled(f"cancelled before GET {path}")

        url = f"{self.api_host}{path}"
        try:
            response = self.session.get(
                url,
                params={"locale": LOCALE},
                headers={NAMESPACE_HEADER: self.namespace},
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"failed to call {url}: {e}", url=url) from e

        if not 200 <= response.status_code < 300:
            raise UpstreamError(
                f"GET {url} returned {response.status_code}",
                url=url,
                status_code=response.status_code,
            )

        try:
            return response.json()
        except ValueError as e:
            raise DecodeError(f"failed to decode JSON from {url}: {e}") from e

    def list_connected_realms(self) -> ConnectedRealmIndex:
        """
        Discover every connected realm in the region.

        Returns:
            ConnectedRealmIndex keyed by lower-cased member realm name

        Raises:
            MalformedReference: If an index link has no numeric id.
            UpstreamError: If the index or any realm detail request fails.
            DecodeError: If a response is not the expected shape.
        """
        index = self._get_json("/data/wow/connected-realm/index")
        links = index.get("connected_realms") if isinstance(index, dict) else None
        if not isinstance(links, list):
            raise DecodeError("connected realm index has no 'connected_realms' list")

        realms: List[ConnectedRealm] = []
        for link in links:
            href = link.get("href") if isinstance(link, dict) else None
            if not isinstance(href, str):
                raise DecodeError(f"connected realm link {link!r} has no href")

            realm_id = parse_realm_id(href)
            try:
                realms.append(self._get_connected_realm(realm_id))
            except UpstreamError as e:
                raise UpstreamError(
                    f"failed to fetch connected realm {realm_id}: {e}",
                    url=e.url,
                    status_code=e.status_code,
                ) from e
            except DecodeError as e:
                raise DecodeError(
                    f"failed to decode connected realm {realm_id}: {e}"
                ) from e

        log_progress(
            "Realm Data Client",
            f"Discovered {len(realms)} connected realms in region {self.region}",
        )
        return ConnectedRealmIndex(realms)

    def _get_connected_realm(self, realm_id: int) -> ConnectedRealm:
        detail = self._get_json(f"/data/wow/connected-realm/{realm_id}")
        members = detail.get("realms") if isinstance(detail, dict) else None
        if not isinstance(members, list):
            raise DecodeError("response has no 'realms' list")

        names = []
        for member in members:
            name = member.get("name") if isinstance(member, dict) else None
            if not isinstance(name, str) or not name:
                raise DecodeError(f"member realm {member!r} has no name")
            names.append(name)

        if not names:
            raise DecodeError("connected realm has no member realms")
        return ConnectedRealm(id=realm_id, member_realm_names=tuple(names))

    def list_auctions(self, connected_realm_id: int) -> List[Auction]:
        """
        Fetch every auction listed on a connected realm.

        The first invalid record fails the whole listing.

        Args:
            connected_realm_id: Connected realm to read

        Returns:
            List of auctions in upstream order

        Raises:
            InvalidAuctionRecord: If any record breaks a listing invariant.
            UpstreamError: If the request fails.
            DecodeError: If the response or a record is malformed.
        """
        listing = self._get_json(f"/data/wow/connected-realm/{connected_realm_id}/auctions")
        records = listing.get("auctions") if isinstance(listing, dict) else None
        if records is None and isinstance(listing, dict):
            records = []
        if not isinstance(records, list):
            raise DecodeError("auction listing has no 'auctions' list")

        auctions = [parse_auction(raw, connected_realm_id) for raw in records]
        log_progress(
            "Realm Data Client",
            f"Fetched {len(auctions)} auctions for connected realm {connected_realm_id}",
        )
        return auctions

    def get_item(self, item_id: int) -> Item:
        """Look up a single item by id."""
        data = self._get_json(f"/data/wow/item/{item_id}")
        try:
            return Item(
                id=int(data["id"]),
                name=data["name"],
                item_class=data["item_class"]["name"],
                item_class_id=int(data["item_class"]["id"]),
                item_subclass=data["item_subclass"]["name"],
                item_subclass_id=int(data["item_subclass"]["id"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise DecodeError(f"malformed item {item_id}: {e}") from e
