"""
Loader setup: input steps, pipeline and multi-loader driver.
"""

from .config_loader import DEFAULT_CONFIG_PATH, SetupConfigLoader
from .driver import LoaderOutcome, configure_loaders, loader_bundles
from .pipeline import STEPS, __version__, run_pipeline, setup
from .state import PipelineState

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "LoaderOutcome",
    "PipelineState",
    "STEPS",
    "SetupConfigLoader",
    "__version__",
    "configure_loaders",
    "loader_bundles",
    "run_pipeline",
    "setup",
]
