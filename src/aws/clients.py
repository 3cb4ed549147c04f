"""
Region-scoped AWS client bundle.

Every service client a loader setup needs is created together, for one
region, and passed explicitly to the steps and adapters that use it.
"""

import os
from dataclasses import dataclass
from typing import Any, Callable

import boto3
from botocore.config import Config

# Regions where the loader function and its supporting services are deployed
SUPPORTED_REGIONS: tuple[str, ...] = (
    "ap-northeast-1",
    "ap-northeast-2",
    "ap-southeast-1",
    "ap-southeast-2",
    "eu-central-1",
    "eu-west-1",
    "sa-east-1",
    "us-east-1",
    "us-west-1",
    "us-west-2",
)


@dataclass(frozen=True)
class RegionClients:
    """
    Service clients bound to a single AWS region.

    Attributes:
        region: Region name the clients were created for
        dynamodb: DynamoDB client (configuration and batch tables)
        kms: KMS client (secret encryption)
        s3: S3 client (watched bucket checks)
        lambda_: Lambda client (loader function permissions)
    """

    region: str
    dynamodb: Any
    kms: Any
    s3: Any
    lambda_: Any


ClientFactory = Callable[[str], RegionClients]


def build_region_clients(region: str, session: boto3.session.Session | None = None) -> RegionClients:
    """
    Create the client bundle for a region.

    Args:
        region: AWS region name
        session: boto3 session to create clients from; a new session using
            AWS_PROFILE (if set) is created when omitted

    Returns:
        RegionClients for the region
    """
    if session is None:
        session = boto3.session.Session(profile_name=os.getenv("AWS_PROFILE") or None)

    # Setup writes are not retried beyond botocore's connection-level defaults
    config = Config(region_name=region, retries={"max_attempts": 1, "mode": "standard"})

    return RegionClients(
        region=region,
        dynamodb=session.client("dynamodb", config=config),
        kms=session.client("kms", config=config),
        s3=session.client("s3", config=config),
        lambda_=session.client("lambda", config=config),
    )
