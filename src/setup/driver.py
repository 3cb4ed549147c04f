"""
Multi-loader setup driver.

A setup document holds either one loader or a ``loaders`` list plus base
fields shared by every loader. Loaders are configured one after another;
a loader that fails validation is reported and the next one still runs.
"""

import time
from collections.abc import Mapping
from typing import Any, Callable

from pydantic import BaseModel

from src.aws.clients import ClientFactory, RegionClients, build_region_clients
from src.core.errors import FatalError, ValidationError
from src.observability.logger import get_logger, log_operation
from src.observability.metrics import record_loader_outcome
from src.setup.pipeline import run_pipeline
from src.store.config_store import ConfigStore

logger = get_logger(__name__)


class LoaderOutcome(BaseModel):
    """
    Result of configuring one loader.

    Attributes:
        index: Position of the loader in the document
        s3_prefix: Prefix as given in the input
        table: Target table as given in the input
        region: Region as given in the input
        success: Whether the record was written
        error: Validation message when the loader was rejected
        field_name: Input field that failed validation
        current_batch: Batch id of the written record
    """

    index: int
    s3_prefix: str | None = None
    table: str | None = None
    region: str | None = None
    success: bool
    error: str | None = None
    field_name: str | None = None
    current_batch: str | None = None


def loader_bundles(document: Mapping[str, Any]) -> list[dict[str, Any]]:
    """
    Merge shared base fields into each loader.

    Loader fields win on key collisions. A document without ``loaders``
    is itself the only loader.
    """
    base = {key: value for key, value in document.items() if key != "loaders"}
    loaders = document.get("loaders")
    if loaders is None:
        return [base]
    return [{**base, **loader} for loader in loaders]


def caching_client_factory(factory: ClientFactory = build_region_clients) -> ClientFactory:
    """Wrap a client factory so each region's clients are built once per run."""
    cache: dict[str, RegionClients] = {}

    def get_clients(region: str) -> RegionClients:
        if region not in cache:
            cache[region] = factory(region)
        return cache[region]

    return get_clients


def configure_loaders(
    document: Mapping[str, Any],
    client_factory: ClientFactory | None = None,
    store_factory: Callable[[RegionClients], Any] = ConfigStore,
) -> list[LoaderOutcome]:
    """
    Configure every loader in a setup document.

    Args:
        document: Parsed setup document
        client_factory: Creates region client bundles (cached per region)
        store_factory: Creates the persistence adapter

    Returns:
        One LoaderOutcome per loader, in document order

    Raises:
        FatalError: If a region is unusable or an AWS call fails; remaining
            loaders are not run
    """
    factory = caching_client_factory(client_factory or build_region_clients)
    outcomes = []

    for index, bundle in enumerate(loader_bundles(document)):
        outcome = LoaderOutcome(
            index=index,
            s3_prefix=_optional_text(bundle.get("s3Prefix")),
            table=_optional_text(bundle.get("table")),
            region=_optional_text(bundle.get("region")),
            success=False,
        )
        logger.info(
            f"Configuring loader for prefix {outcome.s3_prefix} into table {outcome.table} @ {outcome.region}"
        )

        start = time.time()
        try:
            with log_operation("Configuring loader", logger=logger, loader_index=index):
                record = run_pipeline(bundle, client_factory=factory, store_factory=store_factory)
        except ValidationError as e:
            outcome.error = e.message
            outcome.field_name = e.field_name
            record_loader_outcome("invalid", time.time() - start, field_name=e.field_name)
        except FatalError:
            record_loader_outcome("fatal", time.time() - start)
            raise
        else:
            outcome.success = True
            outcome.current_batch = record.current_batch
            record_loader_outcome("success", time.time() - start)

        outcomes.append(outcome)

    return outcomes


def _optional_text(value: Any) -> str | None:
    return None if value is None else str(value)
