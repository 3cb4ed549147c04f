"""
Setup document loading.

Reads the operator's setup document from JSON or YAML and checks its shape
before any loader is configured.
"""

import json
from pathlib import Path
from typing import Any

import yaml

from src.core.errors import ConfigFileError

DEFAULT_CONFIG_PATH = "./config.json"


class SetupConfigLoader:
    """
    Loads a setup document from a JSON or YAML file.

    Expected format, either a single loader:
    ```json
    {"region": "us-east-1", "s3Prefix": "s3://bucket/incoming", "table": "events", ...}
    ```

    or several loaders sharing base fields:
    ```yaml
    region: us-east-1
    manifestBucket: manifests
    loaders:
      - s3Prefix: s3://bucket/events
        table: events
      - s3Prefix: s3://bucket/orders
        table: orders
    ```
    """

    def __init__(self, config_path: str | Path = DEFAULT_CONFIG_PATH):
        """
        Initialize the setup document loader.

        Args:
            config_path: Path to the JSON or YAML document
        """
        self.config_path = Path(config_path)
        if not self.config_path.exists():
            raise ConfigFileError(f"Setup configuration file not found: {config_path}")

    def load(self) -> dict[str, Any]:
        """
        Load and check the setup document.

        Returns:
            The document as a dict

        Raises:
            ConfigFileError: If the file cannot be parsed or has the wrong shape
        """
        try:
            with open(self.config_path, encoding="utf-8") as f:
                if self.config_path.suffix.lower() in (".yaml", ".yml"):
                    document = yaml.safe_load(f)
                else:
                    document = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, yaml.YAMLError) as e:
            raise ConfigFileError(f"Unable to read {self.config_path}: {e}") from e

        if not isinstance(document, dict):
            raise ConfigFileError(f"{self.config_path} must contain a mapping of setup fields")

        loaders = document.get("loaders")
        if loaders is not None:
            if not isinstance(loaders, list):
                raise ConfigFileError("'loaders' must be a list")
            for idx, loader in enumerate(loaders):
                if not isinstance(loader, dict):
                    raise ConfigFileError(f"Loader {idx} must be a mapping of setup fields")

        return document
