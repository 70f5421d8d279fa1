"""
AWS Lambda entry points for the fetch jobs.

Both functions subscribe to the shared trigger topic. Each delivery is
handed to the job's orchestrator; deliveries for other jobs are skipped.
A failed delivery is re-raised so Lambda and SNS redeliver it.

The invocation host builds its AWS clients and the OAuth2 transport cache
once per process, on the first invocation, and reuses them while the
execution environment stays warm.
"""

import json
import threading
from typing import Any, Dict, Optional

import boto3

from wow_ingestion.config import AUCTIONS_JOB, REALMS_JOB, Config
from wow_ingestion.extract.oauth import TransportCache
from wow_ingestion.extract.secrets import SecretStore, build_secrets_client
from wow_ingestion.notify.publisher import LoaderPublisher
from wow_ingestion.orchestrator import ORCHESTRATORS, FetchOrchestrator
from wow_ingestion.staging.writer import StagingWriter
from wow_ingestion.trigger import iter_payloads
from wow_ingestion.utils.logging_utils import log_error, log_progress

# Stop this long before Lambda would kill the invocation
CANCEL_MARGIN_SECONDS = 2.0


class InvocationHost:
    """Process-scoped dependencies shared by every invocation."""

    def __init__(self) -> None:
        Config.validate()
        self.secret_store = SecretStore(
            build_secrets_client(Config.SECRET_FETCH_TIMEOUT_SECONDS)
        )
        self.transport_cache = TransportCache()
        self.staging_writer = StagingWriter()
        self.publisher = LoaderPublisher(boto3.client("sns"), Config.LOADER_TOPIC_ARN)

    def build_orchestrator(self, job_name: str) -> FetchOrchestrator:
        orchestrator_class = ORCHESTRATORS[Config.get_job(job_name).name]
        return orchestrator_class(
            self.secret_store,
            self.transport_cache,
            self.staging_writer,
            self.publisher,
        )


_host: Optional[InvocationHost] = None
_host_lock = threading.Lock()


def get_host() -> InvocationHost:
    """Return the process's InvocationHost, creating it on first use."""
    global _host
    host = _host
    if host is None:
        with _host_lock:
            if _host is None:
                _host = InvocationHost()
            host = _host
    return host


def reset_host() -> None:
    """Drop the cached host so the next invocation rebuilds it."""
    global _host
    with _host_lock:
        _host = None


def _start_deadline(context: Any, cancel_event: threading.Event) -> Optional[threading.Timer]:
    """
    Arm a timer that sets cancel_event shortly before the Lambda deadline.

    Args:
        context: Lambda context object, or None outside Lambda
        cancel_event: Event to set when time runs out

    Returns:
        The started timer, or None when the context has no deadline
    """
    remaining_ms = getattr(context, "get_remaining_time_in_millis", None)
    if remaining_ms is None:
        return None

    delay = remaining_ms() / 1000.0 - CANCEL_MARGIN_SECONDS
    if delay <= 0:
        cancel_event.set()
        return None

    timer = threading.Timer(delay, cancel_event.set)
    timer.daemon = True
    timer.start()
    return timer


def handle(job_name: str, event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Run a fetch job for every trigger delivery in a Lambda event.

    Args:
        job_name: Job this function runs, e.g. 'fetch-auctions'
        event: Lambda event (SNS records, or {"data": ...} for direct calls)
        context: Lambda context object

    Returns:
        Dict containing per-delivery results

    Raises:
        IngestionError: The first failed delivery, so the runtime redelivers it.
    """
    try:
        orchestrator = get_host().build_orchestrator(job_name)
    except Exception as e:
        log_error(f"Fetch Job - {job_name}", e)
        raise

    results = []
    for payload in iter_payloads(event):
        cancel_event = threading.Event()
        timer = _start_deadline(context, cancel_event)
        try:
            results.append(orchestrator.run(payload, cancel_event))
        finally:
            if timer is not None:
                timer.cancel()

    log_progress(f"Fetch Job - {job_name}", f"Handled {len(results)} deliveries")
    return {"statusCode": 200, "body": json.dumps({"results": results})}


def fetch_realms_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Lambda handler for the connected-realm topology job."""
    return handle(REALMS_JOB.name, event, context)


def fetch_auctions_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """Lambda handler for the auction listing job."""
    return handle(AUCTIONS_JOB.name, event, context)
