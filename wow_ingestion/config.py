"""
Configuration module for the fetch pipeline.

Reads environment variables and provides the fixed per-deployment values:
region, secret names, staging bucket, loader topic, and the constants of
each fetch job.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict

from dotenv import load_dotenv

from wow_ingestion.errors import ConfigurationError
from wow_ingestion.notify.contract import WriteDisposition


def _load_dotenv_if_local(dotenv_path: Path) -> None:
    """
    Loads environment variables from a .env file when not running in AWS.

    Existing environment variables are never overwritten.

    Args:
        dotenv_path (Path): Path to the .env file.
    """
    for aws_indicator in ("AWS_EXECUTION_ENV", "AWS_LAMBDA_FUNCTION_NAME"):
        if os.getenv(aws_indicator):
            return
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=False)


_load_dotenv_if_local(Path(__file__).parent.parent / ".env")


@dataclass(frozen=True)
class JobSpec:
    """
    Constants for one fetch job.

    Attributes:
        name: Trigger target this job answers to.
        object_key: Object key the staged CSV is written to.
        table_id: Warehouse table the loader writes into.
        write_mode: How the loader treats existing rows in that table.
        trigger_encoding: 'raw' for UTF-8 JSON triggers, 'base64' for encoded ones.
    """

    name: str
    object_key: str
    table_id: str
    write_mode: WriteDisposition
    trigger_encoding: str


REALMS_JOB = JobSpec(
    name="fetch-realms",
    object_key="realms",
    table_id="realms",
    write_mode=WriteDisposition.TRUNCATE,
    trigger_encoding="base64",
)

AUCTIONS_JOB = JobSpec(
    name="fetch-auctions",
    object_key="auctions",
    table_id="auctions",
    write_mode=WriteDisposition.APPEND,
    trigger_encoding="raw",
)


class Config:
    """
    Configuration class that reads environment variables for the fetch pipeline.
    """

    # Upstream API
    REGION: str = os.getenv("WOW_REGION", "us").lower()
    API_TIMEOUT_SECONDS: float = float(os.getenv("API_TIMEOUT_SECONDS", "10"))
    AUCTIONS_CONNECTED_REALM_ID: int = int(
        os.getenv("AUCTIONS_CONNECTED_REALM_ID", "61")
    )

    # Secrets Manager
    CLIENT_ID_SECRET_NAME: str = os.getenv(
        "CLIENT_ID_SECRET_NAME", "blizzard-oauth-client-id"
    )
    CLIENT_SECRET_SECRET_NAME: str = os.getenv(
        "CLIENT_SECRET_SECRET_NAME", "blizzard-oauth-client-secret"
    )
    SECRET_FETCH_TIMEOUT_SECONDS: float = float(
        os.getenv("SECRET_FETCH_TIMEOUT_SECONDS", "5")
    )

    # Staging and loader hand-off
    STAGING_BUCKET: str = os.getenv("STAGING_BUCKET", "wow-realm-data")
    LOADER_TOPIC_ARN: str = os.getenv("LOADER_TOPIC_ARN", "")
    DATASET_ID: str = os.getenv("DATASET_ID", "wow_data")

    JOBS: Dict[str, JobSpec] = {job.name: job for job in (REALMS_JOB, AUCTIONS_JOB)}

    @classmethod
    def validate(cls) -> None:
        """
        Validate that required configuration values are present.

        Raises:
            ConfigurationError: If any required configuration is missing or invalid.
        """
        required_vars = [
            ("WOW_REGION", cls.REGION),
            ("CLIENT_ID_SECRET_NAME", cls.CLIENT_ID_SECRET_NAME),
            ("CLIENT_SECRET_SECRET_NAME", cls.CLIENT_SECRET_SECRET_NAME),
            ("STAGING_BUCKET", cls.STAGING_BUCKET),
            ("LOADER_TOPIC_ARN", cls.LOADER_TOPIC_ARN),
            ("DATASET_ID", cls.DATASET_ID),
        ]

        missing = [name for name, value in required_vars if not value]
        if missing:
            raise ConfigurationError(
                f"Missing required environment variables: {', '.join(missing)}"
            )

        if cls.SECRET_FETCH_TIMEOUT_SECONDS <= 0:
            raise ConfigurationError("SECRET_FETCH_TIMEOUT_SECONDS must be positive")

    @classmethod
    def get_job(cls, name: str) -> JobSpec:
        """
        Look up the constants of a fetch job.

        Args:
            name: Job name, e.g. 'fetch-auctions'

        Returns:
            JobSpec: The job's constants

        Raises:
            ConfigurationError: If no job has that name.
        """
        try:
            return cls.JOBS[name]
        except KeyError:
            raise ConfigurationError(f"Unknown fetch job: {name}") from None

    @classmethod
    def get_staging_uri(cls, object_key: str) -> str:
        """
        Canonical reference to a staged object.

        Args:
            object_key: Key of the object inside the staging bucket

        Returns:
            str: s3:// URI of the object
        """
        return f"s3://{cls.STAGING_BUCKET}/{object_key}"
