"""
Record-in-progress threaded through the setup steps.
"""

import uuid
from dataclasses import dataclass, field
from typing import Any, Callable

from src.aws.clients import ClientFactory, RegionClients
from src.crypto.kms_crypto import KmsCrypto


@dataclass
class PipelineState:
    """
    Mutable accumulator for one loader's setup run.

    Attributes:
        item: Top-level record attributes, keyed by stored attribute name
        cluster: Attributes of the single load cluster
        client_factory: Builds the region client bundle in the region step
        store_factory: Builds the persistence adapter in the finalize step
        clients: Region client bundle, set by the region step
        crypto: Encryption adapter bound to the region's KMS client
        record: Validated record, set by the finalize step
        completed_steps: Names of the steps run so far
    """

    item: dict[str, Any]
    cluster: dict[str, Any]
    client_factory: ClientFactory
    store_factory: Callable[[RegionClients], Any]
    clients: RegionClients | None = None
    crypto: KmsCrypto | None = None
    record: Any = None
    completed_steps: list[str] = field(default_factory=list)

    @classmethod
    def start(
        cls,
        client_factory: ClientFactory,
        store_factory: Callable[[RegionClients], Any],
        version: str,
    ) -> "PipelineState":
        """Empty record with a fresh batch id, the version and a cluster placeholder."""
        return cls(
            item={"currentBatch": str(uuid.uuid4()), "version": version},
            cluster={},
            client_factory=client_factory,
            store_factory=store_factory,
        )

    @property
    def data_format(self) -> str | None:
        return self.item.get("dataFormat")

    def require_crypto(self) -> KmsCrypto:
        if self.crypto is None:
            raise RuntimeError("Region must be configured before secrets can be encrypted")
        return self.crypto
