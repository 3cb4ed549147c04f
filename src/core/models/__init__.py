"""
Pydantic models for loader configuration records.
"""

from .load_cluster import LoadCluster
from .loader_configuration import DATA_FORMATS, DataFormat, LoaderConfiguration

__all__ = [
    "DATA_FORMATS",
    "DataFormat",
    "LoadCluster",
    "LoaderConfiguration",
]
