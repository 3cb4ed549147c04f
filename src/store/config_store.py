"""
DynamoDB writer for loader configuration records.

A record is written with a single PutItem once it is complete; failures
are fatal and not retried.
"""

from botocore.exceptions import BotoCoreError, ClientError

from src.aws.clients import RegionClients
from src.core.errors import StorageError
from src.core.models import LoaderConfiguration
from src.observability.logger import get_logger
from src.store.provisioning import Provisioner

logger = get_logger(__name__)

# One provisioner per client bundle, so tables are checked once per region
_provisioners: dict[RegionClients, Provisioner] = {}


def get_provisioner(clients: RegionClients) -> Provisioner:
    """Get the shared provisioner for a client bundle."""
    if clients not in _provisioners:
        _provisioners[clients] = Provisioner(clients)
    return _provisioners[clients]


def reset_provisioners() -> None:
    """Forget cached provisioners (used by tests)."""
    _provisioners.clear()


class ConfigStore:
    """
    Persists LoaderConfiguration records to the configuration table.
    """

    def __init__(
        self,
        clients: RegionClients,
        table_name: str | None = None,
        provisioner: Provisioner | None = None,
    ) -> None:
        """
        Initialize configuration store.

        Args:
            clients: Region client bundle
            table_name: Configuration table (defaults to the provisioner's table)
            provisioner: Provisioner to run before the first write
        """
        self.clients = clients
        self.provisioner = provisioner or get_provisioner(clients)
        self.table_name = table_name or self.provisioner.config_table

    def persist(self, record: LoaderConfiguration) -> None:
        """
        Write a configuration record.

        Args:
            record: Complete, validated configuration

        Raises:
            ValidationError: If the watched bucket does not exist
            StorageError: If provisioning or the write fails
        """
        bucket = record.s3_prefix.split("/", 1)[0]
        self.provisioner.ensure_all(bucket)

        try:
            self.clients.dynamodb.put_item(TableName=self.table_name, Item=record.to_item())
        except (ClientError, BotoCoreError) as e:
            raise StorageError(f"Unable to write configuration for {record.s3_prefix}: {e}") from e

        logger.info(
            f"Stored configuration for s3://{record.s3_prefix}",
            extra={"table": self.table_name, "current_batch": record.current_batch},
        )
