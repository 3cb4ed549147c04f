"""
Persistence of loader configuration records.
"""

from .config_store import ConfigStore, get_provisioner, reset_provisioners
from .provisioning import DEFAULT_BATCH_TABLE, DEFAULT_CONFIG_TABLE, Provisioner

__all__ = [
    "ConfigStore",
    "DEFAULT_BATCH_TABLE",
    "DEFAULT_CONFIG_TABLE",
    "Provisioner",
    "get_provisioner",
    "reset_provisioners",
]
