from __future__ import annotations

import boto3
from botocore.config import Config

from .settings import S

_session = boto3.session.Session(
    region_name=S.aws_region or "us-east-1",
    aws_access_key_id=S.aws_access_key_id or None,
    aws_secret_access_key=S.aws_secret_access_key or None,
)

ddb = _session.resource("dynamodb", endpoint_url=S.ddb_endpoint_url or None)

# Single attempt per call; callers decide what a failure means.
NO_RETRY = Config(retries={"max_attempts": 1, "mode": "standard"})

def s3_client(*, region: str, endpoint_url: str = "", access_key_id: str = "", secret_access_key: str = ""):
    return boto3.client(
        "s3",
        region_name=region or "us-east-1",
        endpoint_url=endpoint_url or None,
        aws_access_key_id=access_key_id or None,
        aws_secret_access_key=secret_access_key or None,
        config=NO_RETRY,
    )
