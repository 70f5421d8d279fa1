"""
Message-triggered fetch orchestration.

A FetchOrchestrator runs one fetch job per trigger delivery:

    receive trigger -> decode -> (skip if meant for another job)
    -> resolve secrets -> authenticate -> fetch -> stage CSV -> notify loader

The first failure ends the invocation and is re-raised so the message bus
redelivers the trigger. No stage retries on its own.

Staging and notification are two independent effects. A crash between them
leaves a staged object with no load notification; the redelivered trigger
overwrites the object and notifies again, which is safe only because staging
is a full overwrite and the loader's write disposition makes the load
idempotent for that job.
"""

import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

from wow_ingestion.config import AUCTIONS_JOB, REALMS_JOB, Config, JobSpec
from wow_ingestion.errors import Cancelled, IngestionError
from wow_ingestion.extract.api_client import RealmDataClient
from wow_ingestion.extract.oauth import TransportCache
from wow_ingestion.extract.secrets import SecretStore
from wow_ingestion.models import ConnectedRealmIndex
from wow_ingestion.notify.contract import NotifyMessage
from wow_ingestion.notify.publisher import LoaderPublisher
from wow_ingestion.staging.writer import (
    AUCTION_COLUMNS,
    REALM_COLUMNS,
    StagingWriter,
    auction_rows,
    realm_rows,
)
from wow_ingestion.trigger import decode_trigger
from wow_ingestion.utils.logging_utils import (
    log_error,
    log_progress,
    log_section_complete,
    log_section_start,
)

ClientFactory = Callable[..., RealmDataClient]


class FetchOrchestrator:
    """
    Runs one fetch job for each trigger delivery addressed to it.

    Subclasses set ``job`` and ``columns`` and implement ``fetch`` and
    ``to_rows``. Every external capability is passed in at construction;
    the orchestrator holds no state between invocations beyond what the
    transport cache keeps.
    """

    job: JobSpec
    columns: Sequence[str]

    def __init__(
        self,
        secret_store: SecretStore,
        transport_cache: TransportCache,
        staging_writer: StagingWriter,
        publisher: LoaderPublisher,
        region: Optional[str] = None,
        dataset_id: Optional[str] = None,
        client_id_secret_name: Optional[str] = None,
        client_secret_secret_name: Optional[str] = None,
        api_timeout: Optional[float] = None,
        client_factory: ClientFactory = RealmDataClient,
    ) -> None:
        self.secret_store = secret_store
        self.transport_cache = transport_cache
        self.staging_writer = staging_writer
        self.publisher = publisher
        self.region = region or Config.REGION
        self.dataset_id = dataset_id or Config.DATASET_ID
        self.client_id_secret_name = client_id_secret_name or Config.CLIENT_ID_SECRET_NAME
        self.client_secret_secret_name = (
            client_secret_secret_name or Config.CLIENT_SECRET_SECRET_NAME
        )
        self.api_timeout = api_timeout or Config.API_TIMEOUT_SECONDS
        self.client_factory = client_factory

    @property
    def section(self) -> str:
        return f"Fetch Job - {self.job.name}"

    def fetch(self, client: RealmDataClient) -> Any:
        raise NotImplementedError

    def to_rows(self, result: Any) -> List[List[Any]]:
        raise NotImplementedError

    @contextmanager
    def _stage(
        self, name: str, cancel_event: Optional[threading.Event]
    ) -> Iterator[None]:
        """Tag failures with the stage they happened in, log them, and re-raise."""
        section = f"{self.section} - {name}"
        if cancel_event is not None and cancel_event.is_set():
            error = Cancelled(f"cancelled before {name}", stage=name)
            log_error(section, error)
            raise error

        log_section_start(section)
        try:
            yield
        except IngestionError as e:
            if e.stage is None:
                e.stage = name
            log_error(section, e)
            raise
        except Exception as e:
            log_error(section, e)
            raise
        log_section_complete(section)

    def run(
        self, payload: bytes, cancel_event: Optional[threading.Event] = None
    ) -> Dict[str, Any]:
        """
        Handle one trigger delivery.

        Args:
            payload: Trigger payload as delivered by the message bus
            cancel_event: When set, the invocation stops with Cancelled at the
                next stage boundary or upstream request

        Returns:
            Dict describing the outcome: 'skipped' for empty deliveries and
            triggers meant for other jobs, otherwise 'success' with the
            staged object reference and record count

        Raises:
            IngestionError: The first failure of any stage.
        """
        if not payload:
            log_progress(self.section, "Got empty message, skipping")
            return {"status": "skipped", "job": self.job.name, "reason": "empty payload"}

        with self._stage("decode", cancel_event):
            trigger = decode_trigger(payload, self.job.trigger_encoding)

        if trigger.target != self.job.name:
            log_progress(
                self.section, f"Trigger intended for a different target {trigger.target!r}"
            )
            return {
                "status": "skipped",
                "job": self.job.name,
                "reason": f"target {trigger.target!r}",
            }

        log_section_start(self.section)

        secrets = {self.client_id_secret_name: "", self.client_secret_secret_name: ""}
        with self._stage("resolve secrets", cancel_event):
            self.secret_store.resolve(secrets)

        with self._stage("authenticate", cancel_event):
            session = self.transport_cache.get(
                secrets[self.client_id_secret_name],
                secrets[self.client_secret_secret_name],
                self.region,
            )

        with self._stage("fetch", cancel_event):
            client = self.client_factory(
                session, self.region, timeout=self.api_timeout, cancel_event=cancel_event
            )
            result = self.fetch(client)

        with self._stage("stage", cancel_event):
            rows = self.to_rows(result)
            object_reference = self.staging_writer.write_rows(
                self.job.object_key, self.columns, rows
            )

        with self._stage("notify", cancel_event):
            self.publisher.publish(
                NotifyMessage(
                    object_reference=object_reference,
                    dataset_id=self.dataset_id,
                    table_id=self.job.table_id,
                    write_mode=self.job.write_mode,
                )
            )

        log_section_complete(
            self.section, f"Staged {len(rows)} rows at {object_reference}"
        )
        return {
            "status": "success",
            "job": self.job.name,
            "records": len(rows),
            "objectReference": object_reference,
        }


class RealmFetchOrchestrator(FetchOrchestrator):
    """Stages the region's connected-realm topology; the loader replaces its table."""

    job = REALMS_JOB
    columns = REALM_COLUMNS

    def fetch(self, client: RealmDataClient) -> ConnectedRealmIndex:
        return client.list_connected_realms()

    def to_rows(self, result: ConnectedRealmIndex) -> List[List[Any]]:
        return realm_rows(result)


class AuctionFetchOrchestrator(FetchOrchestrator):
    """Stages one connected realm's auction listings; the loader appends them."""

    job = AUCTIONS_JOB
    columns = AUCTION_COLUMNS

    def __init__(self, *args, connected_realm_id: Optional[int] = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.connected_realm_id = connected_realm_id or Config.AUCTIONS_CONNECTED_REALM_ID

    def fetch(self, client: RealmDataClient) -> list:
        return client.list_auctions(self.connected_realm_id)

    def to_rows(self, result: list) -> List[List[Any]]:
        return auction_rows(result)


ORCHESTRATORS = {
    REALMS_JOB.name: RealmFetchOrchestrator,
    AUCTIONS_JOB.name: AuctionFetchOrchestrator,
}
