#!/usr/bin/env python3
"""
AWS CDK App for the auction-house fetch pipeline.
"""

import os
import sys
from pathlib import Path

from dotenv import load_dotenv
import aws_cdk as cdk

# Make wow_ingestion importable when run from this directory
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from fetch.fetch_stack import FetchStack  # noqa: E402

# Load environment variables from .env file (in project root, one level up)
env_path = project_root / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path, override=True)
else:
    print(f"Warning: .env file not found at {env_path}", file=sys.stderr)

app = cdk.App()

env = cdk.Environment(
    account=os.getenv("AWS_ACCOUNT_ID", os.getenv("CDK_DEFAULT_ACCOUNT")),
    region=os.getenv("AWS_DEFAULT_REGION", "us-east-1"),
)

FetchStack(
    app,
    "WowFetchStack",
    staging_bucket_name=os.getenv("STAGING_BUCKET", "wow-realm-data"),
    client_id_secret_name=os.getenv("CLIENT_ID_SECRET_NAME", "blizzard-oauth-client-id"),
    client_secret_secret_name=os.getenv(
        "CLIENT_SECRET_SECRET_NAME", "blizzard-oauth-client-secret"
    ),
    region_code=os.getenv("WOW_REGION", "us"),
    dataset_id=os.getenv("DATASET_ID", "wow_data"),
    env=env,
)

app.synth()
