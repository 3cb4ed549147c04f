"""
Loader setup pipeline.

Runs the setup steps in order over one raw input bundle and persists the
resulting LoaderConfiguration.

Flow: region → source → load cluster → data format → manifests →
credentials → notifications & batching → finalize
"""

from collections.abc import Mapping
from typing import Any, Callable

from src.aws.clients import ClientFactory, RegionClients, build_region_clients
from src.core.models import LoaderConfiguration
from src.observability.logger import get_logger
from src.setup import steps
from src.setup.state import PipelineState
from src.store.config_store import ConfigStore

logger = get_logger(__name__)

__version__ = "2.8.0"

Step = Callable[[Mapping[str, Any], PipelineState], PipelineState]

# Order matters: later steps read the region clients and the data format
STEPS: tuple[Step, ...] = (
    steps.region,
    steps.s3_prefix,
    steps.filename_filter,
    steps.cluster_endpoint,
    steps.cluster_port,
    steps.cluster_use_ssl,
    steps.cluster_db,
    steps.table,
    steps.column_list,
    steps.truncate_table,
    steps.user_name,
    steps.user_password,
    steps.data_format,
    steps.csv_delimiter,
    steps.json_paths,
    steps.manifest_bucket,
    steps.manifest_prefix,
    steps.failed_manifest_prefix,
    steps.access_key,
    steps.secret_key,
    steps.success_topic,
    steps.failure_topic,
    steps.batch_size,
    steps.batch_size_bytes,
    steps.batch_timeout_secs,
    steps.copy_options,
    steps.symmetric_key,
    steps.finalize,
)


def run_pipeline(
    config: Mapping[str, Any],
    client_factory: ClientFactory = build_region_clients,
    store_factory: Callable[[RegionClients], Any] = ConfigStore,
    version: str = __version__,
) -> LoaderConfiguration:
    """
    Build and persist one loader configuration.

    Args:
        config: Raw input bundle (already merged with any shared fields)
        client_factory: Creates the region client bundle
        store_factory: Creates the persistence adapter for a client bundle
        version: Version written into the record

    Returns:
        The persisted LoaderConfiguration

    Raises:
        ValidationError: If any input field is missing or invalid
        EncryptionError: If a secret cannot be encrypted
        StorageError: If the record cannot be written
    """
    state = PipelineState.start(client_factory, store_factory, version)

    for step in STEPS:
        state = step(config, state)
        state.completed_steps.append(step.__name__)

    logger.debug(f"Completed {len(state.completed_steps)} setup steps", extra={"s3_prefix": state.record.s3_prefix})
    return state.record


def setup(record: LoaderConfiguration, clients: RegionClients) -> None:
    """
    Persist an already-built configuration.

    Lets other tooling register loaders without going through the
    input-bundle steps.

    Args:
        record: Complete loader configuration
        clients: Client bundle for the region the record belongs to
    """
    ConfigStore(clients).persist(record)
