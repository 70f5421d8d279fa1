"""
Secret resolution against AWS Secrets Manager.

Each secret is fetched under a bounded deadline: the Secrets Manager client
is built with connect/read timeouts and a single attempt, so a slow or
unreachable endpoint fails the invocation instead of hanging it.
"""

from typing import Any, Dict

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError

from wow_ingestion.errors import SecretResolutionError
from wow_ingestion.utils.logging_utils import log_progress


def build_secrets_client(timeout_seconds: float) -> Any:
    """
    Create a Secrets Manager client whose calls are bounded by timeout_seconds.

    Connect and read waits of the single attempt together stay within
    timeout_seconds.

    Args:
        timeout_seconds: Total deadline for each secret fetch

    Returns:
        A boto3 secretsmanager client
    """
    return boto3.client(
        "secretsmanager",
        config=BotoConfig(
            connect_timeout=timeout_seconds / 2,
            read_timeout=timeout_seconds / 2,
            retries={"total_max_attempts": 1},
        ),
    )


class SecretStore:
    """Reads secret values by name."""

    def __init__(self, secrets_client: Any) -> None:
        self.secrets_client = secrets_client

    def fetch_secret(self, name: str) -> str:
        """
        Fetch the current value of a secret.

        Args:
            name: Secret name or ARN

        Returns:
            str: The secret value

        Raises:
            SecretResolutionError: If the secret is missing, empty, or the
                fetch fails or times out.
        """
        try:
            response = self.secrets_client.get_secret_value(SecretId=name)
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code", "")
            if code == "ResourceNotFoundException":
                raise SecretResolutionError(f"secret {name!r} not found") from e
            raise SecretResolutionError(f"failed to fetch {name!r}: {e}") from e
        except BotoCoreError as e:
            raise SecretResolutionError(f"failed to fetch {name!r}: {e}") from e

        value = response.get("SecretString")
        if value is None:
            binary = response.get("SecretBinary")
            value = binary.decode("utf-8") if binary else None

        if not value:
            raise SecretResolutionError(f"secret {name!r} returned empty data")
        return value

    def resolve(self, to_fetch: Dict[str, str]) -> None:
        """
        Resolve every secret named by the keys of to_fetch, in place.

        Args:
            to_fetch: Mapping of secret name to value; values are overwritten

        Raises:
            SecretResolutionError: On the first secret that cannot be resolved.
        """
        for name in list(to_fetch):
            to_fetch[name] = self.fetch_secret(name)
            log_progress("Secret Resolution", f"Resolved {name}")
