"""
AWS client construction.
"""

from .clients import SUPPORTED_REGIONS, ClientFactory, RegionClients, build_region_clients

__all__ = [
    "SUPPORTED_REGIONS",
    "ClientFactory",
    "RegionClients",
    "build_region_clients",
]
