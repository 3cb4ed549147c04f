"""
One-time provisioning of the resources the loader depends on.

Handles:
- Creating the configuration and batch tables in DynamoDB
- Allowing S3 to invoke the loader function for a watched bucket
- Checking the watched bucket exists

Every operation is idempotent, so it is safe to run on each setup.
"""

import os
import re
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from src.aws.clients import RegionClients
from src.core.errors import StorageError, ValidationError
from src.observability.logger import get_logger, log_operation

logger = get_logger(__name__)

DEFAULT_CONFIG_TABLE = "LambdaRedshiftBatchLoadConfig"
DEFAULT_BATCH_TABLE = "LambdaRedshiftBatches"


def _error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def config_table_name() -> str:
    return os.getenv("LOADER_CONFIG_TABLE", DEFAULT_CONFIG_TABLE)


def batch_table_name() -> str:
    return os.getenv("LOADER_BATCH_TABLE", DEFAULT_BATCH_TABLE)


def table_definitions(config_table: str, batch_table: str) -> dict[str, dict[str, Any]]:
    """CreateTable arguments for the configuration and batch tables."""
    return {
        config_table: {
            "AttributeDefinitions": [{"AttributeName": "s3Prefix", "AttributeType": "S"}],
            "KeySchema": [{"AttributeName": "s3Prefix", "KeyType": "HASH"}],
        },
        batch_table: {
            "AttributeDefinitions": [
                {"AttributeName": "s3Prefix", "AttributeType": "S"},
                {"AttributeName": "batchId", "AttributeType": "S"},
            ],
            "KeySchema": [
                {"AttributeName": "s3Prefix", "KeyType": "HASH"},
                {"AttributeName": "batchId", "KeyType": "RANGE"},
            ],
        },
    }


class Provisioner:
    """
    Ensures the loader's supporting AWS resources exist.
    """

    def __init__(
        self,
        clients: RegionClients,
        config_table: str | None = None,
        batch_table: str | None = None,
        function_name: str | None = None,
    ) -> None:
        """
        Initialize provisioner.

        Args:
            clients: Region client bundle
            config_table: Configuration table (defaults to env var LOADER_CONFIG_TABLE)
            batch_table: Batch table (defaults to env var LOADER_BATCH_TABLE)
            function_name: Loader function (defaults to env var LOADER_FUNCTION_NAME;
                the permission step is skipped when unset)
        """
        self.clients = clients
        self.config_table = config_table or config_table_name()
        self.batch_table = batch_table or batch_table_name()
        self.function_name = function_name or os.getenv("LOADER_FUNCTION_NAME")
        self._tables_ready = False

    def ensure_all(self, bucket: str) -> None:
        """
        Ensure tables, function permission and watched bucket.

        Args:
            bucket: Bucket the loader watches for new files

        Raises:
            ValidationError: If the watched bucket does not exist
            StorageError: If any AWS call fails
        """
        if not self._tables_ready:
            with log_operation("Ensuring loader tables", logger=logger, region=self.clients.region):
                self.ensure_tables()
            self._tables_ready = True

        self.ensure_bucket(bucket)

        if self.function_name:
            self.ensure_invoke_permission(bucket)

    def ensure_tables(self) -> None:
        """Create the configuration and batch tables if they do not exist."""
        dynamodb = self.clients.dynamodb

        for table_name, definition in table_definitions(self.config_table, self.batch_table).items():
            try:
                dynamodb.describe_table(TableName=table_name)
                logger.debug(f"Table {table_name} exists")
                continue
            except ClientError as e:
                if _error_code(e) != "ResourceNotFoundException":
                    raise StorageError(f"Unable to describe table {table_name}: {e}") from e
            except BotoCoreError as e:
                raise StorageError(f"Unable to describe table {table_name}: {e}") from e

            logger.info(f"Creating table {table_name}")
            try:
                dynamodb.create_table(
                    TableName=table_name,
                    BillingMode="PAY_PER_REQUEST",
                    **definition,
                )
                dynamodb.get_waiter("table_exists").wait(TableName=table_name)
            except ClientError as e:
                # Another setup run created it first
                if _error_code(e) == "ResourceInUseException":
                    continue
                raise StorageError(f"Unable to create table {table_name}: {e}") from e
            except BotoCoreError as e:
                raise StorageError(f"Unable to create table {table_name}: {e}") from e

    def ensure_bucket(self, bucket: str) -> None:
        """Check the watched bucket exists."""
        try:
            self.clients.s3.head_bucket(Bucket=bucket)
        except ClientError as e:
            if _error_code(e) in ("404", "NoSuchBucket", "NotFound"):
                raise ValidationError(f"Bucket {bucket} does not exist", "s3Prefix") from e
            raise StorageError(f"Unable to access bucket {bucket}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Unable to access bucket {bucket}: {e}") from e

    def ensure_invoke_permission(self, bucket: str) -> None:
        """Allow S3 events from the bucket to invoke the loader function."""
        statement_id = "s3-invoke-" + re.sub(r"[^A-Za-z0-9_-]", "-", bucket)
        try:
            self.clients.lambda_.add_permission(
                FunctionName=self.function_name,
                StatementId=statement_id,
                Action="lambda:InvokeFunction",
                Principal="s3.amazonaws.com",
                SourceArn=f"arn:aws:s3:::{bucket}",
            )
            logger.info(f"Granted S3 bucket {bucket} permission to invoke {self.function_name}")
        except ClientError as e:
            if _error_code(e) == "ResourceConflictException":
                logger.debug(f"Invoke permission {statement_id} already present")
                return
            raise StorageError(f"Unable to grant invoke permission on {self.function_name}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Unable to grant invoke permission on {self.function_name}: {e}") from e
