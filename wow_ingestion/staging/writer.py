"""
Staging writer.

Serializes fetch results to headerless CSV and writes them to a fixed S3
object. Every write fully replaces the object, so re-running a job
overwrites its previous output.
"""

import io
from typing import Any, Iterable, List, Optional, Sequence

import awswrangler as wr
import boto3
import pandas as pd

from wow_ingestion.config import Config
from wow_ingestion.errors import StorageError
from wow_ingestion.models import Auction, ConnectedRealmIndex
from wow_ingestion.utils.logging_utils import log_error, log_progress

REALM_COLUMNS = ["name", "connected_realm_id"]

AUCTION_COLUMNS = [
    "auction_id",
    "item_id",
    "quantity",
    "unit_price",
    "buyout",
    "time_left",
    "realm_id",
]


def realm_rows(index: ConnectedRealmIndex) -> List[List[Any]]:
    """
    One row per member realm: the realm's display name and its connected realm id.

    Args:
        index: Connected realms to stage

    Returns:
        List of [name, connected_realm_id] rows
    """
    return [
        [name, realm.id]
        for realm in index.connected_realms()
        for name in realm.member_realm_names
    ]


def auction_rows(auctions: Iterable[Auction]) -> List[List[Any]]:
    """Rows in AUCTION_COLUMNS order."""
    return [auction.to_row() for auction in auctions]


class StagingWriter:
    """Writes CSV rows to objects in the staging bucket."""

    def __init__(self, boto3_session: Optional[boto3.Session] = None) -> None:
        """
        Args:
            boto3_session: Session used for S3 access; the default session when None
        """
        self.boto3_session = boto3_session

    def write_rows(
        self, object_key: str, columns: Sequence[str], rows: List[List[Any]]
    ) -> str:
        """
        Write rows as headerless CSV to the staging bucket, replacing any existing object.

        Args:
            object_key: Destination key inside the staging bucket
            columns: Column names, fixing the field order of each row
            rows: Rows to write

        Returns:
            str: s3:// reference of the staged object

        Raises:
            StorageError: If the object cannot be written.
        """
        path = Config.get_staging_uri(object_key)
        log_progress("Staging Writer", f"Writing {len(rows)} rows to {path}")

        try:
            if rows:
                df = pd.DataFrame(rows, columns=list(columns))
                result = wr.s3.to_csv(
                    df=df,
                    path=path,
                    index=False,
                    header=False,
                    boto3_session=self.boto3_session,
                )
                paths = result.get("paths") or [path]
            else:
                # Empty results still replace the previous output
                wr.s3.upload(
                    local_file=io.BytesIO(b""),
                    path=path,
                    boto3_session=self.boto3_session,
                )
                paths = [path]
        except Exception as e:
            log_error("Staging Writer", f"Failed to write {path}: {e}")
            raise StorageError(f"failed to write to storage at {path}: {e}") from e

        log_progress("Staging Writer", f"Successfully staged {path}")
        return paths[0]
