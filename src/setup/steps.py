"""
Setup steps for one loader configuration.

Each step reads its input fields from the raw bundle, validates them and
sets the matching attributes on the record in progress. Steps run in the
order of STEPS (see pipeline.py): the region step selects the clients used
by every later step, and the data format step gates the format-specific
steps that follow it.

Step signature: ``step(config, state) -> state``. A step raises
ValidationError to reject the loader, InvalidRegionError when no usable
region is given, or EncryptionError / StorageError when an AWS call fails.
"""

from collections.abc import Mapping
from typing import Any

from pydantic import ValidationError as ModelValidationError

from src.aws.clients import SUPPORTED_REGIONS
from src.core.errors import InvalidRegionError, ValidationError
from src.core.models import DATA_FORMATS, LoaderConfiguration
from src.crypto.kms_crypto import KmsCrypto
from src.observability.logger import get_logger
from src.setup.state import PipelineState
from src.utils.validation import (
    coerce_bool,
    coerce_int,
    is_blank,
    require_in_set,
    require_not_blank,
)

logger = get_logger(__name__)

Config = Mapping[str, Any]


def _text(value: Any) -> str:
    return value if isinstance(value, str) else str(value)


def normalize_s3_prefix(value: str) -> str:
    """
    Normalise an S3 location to ``bucket`` or ``bucket/prefix``.

    Examples:
        >>> normalize_s3_prefix("s3://bucket/path/")
        'bucket/path'
        >>> normalize_s3_prefix("s3://bucket/")
        'bucket'
    """
    stripped = value.replace("s3://", "")
    elements = stripped.split("/")

    if len(elements) == 1:
        return elements[0]

    stripped = stripped[:-1] if stripped.endswith("/") else stripped
    return stripped


# =======================
# SOURCE
# =======================

def region(config: Config, state: PipelineState) -> PipelineState:
    """
    Region for the configuration; creates the region client bundle.

    No AWS call can be made without a usable region, so a missing or
    unsupported region stops the run rather than just this loader.
    """
    message = f"You must provide a region from {', '.join(SUPPORTED_REGIONS)}"
    value = config.get("region")
    set_region = "" if is_blank(value) else _text(value).strip().lower()
    if set_region not in SUPPORTED_REGIONS:
        raise InvalidRegionError(message)

    logger.debug(f"Creating AWS clients for region {set_region}")
    state.clients = state.client_factory(set_region)
    state.crypto = KmsCrypto(state.clients.kms)
    return state


def s3_prefix(config: Config, state: PipelineState) -> PipelineState:
    """The S3 bucket and optional prefix watched for new files."""
    value = require_not_blank(
        config.get("s3Prefix"),
        "You must provide an S3 bucket name, and optionally a prefix",
        "s3Prefix",
    )
    state.item["s3Prefix"] = normalize_s3_prefix(_text(value))
    return state


def filename_filter(config: Config, state: PipelineState) -> PipelineState:
    """Regex applied to file names under the prefix (optional)."""
    if not is_blank(config.get("filenameFilter")):
        state.item["filenameFilterRegex"] = _text(config["filenameFilter"])
    return state


# =======================
# LOAD CLUSTER
# =======================

def cluster_endpoint(config: Config, state: PipelineState) -> PipelineState:
    value = require_not_blank(
        config.get("clusterEndpoint"), "You must provide a cluster endpoint", "clusterEndpoint"
    )
    state.cluster["clusterEndpoint"] = _text(value)
    return state


def cluster_port(config: Config, state: PipelineState) -> PipelineState:
    value = require_not_blank(config.get("clusterPort"), "You must provide a cluster port", "clusterPort")
    state.cluster["clusterPort"] = coerce_int(value, "clusterPort")
    return state


def cluster_use_ssl(config: Config, state: PipelineState) -> PipelineState:
    state.cluster["useSSL"] = coerce_bool(config.get("clusterUseSSL"))
    return state


def cluster_db(config: Config, state: PipelineState) -> PipelineState:
    if not is_blank(config.get("clusterDB")):
        state.cluster["clusterDB"] = _text(config["clusterDB"])
    return state


def table(config: Config, state: PipelineState) -> PipelineState:
    value = require_not_blank(config.get("table"), "You must provide a table name", "table")
    state.cluster["targetTable"] = _text(value)
    return state


def column_list(config: Config, state: PipelineState) -> PipelineState:
    """Comma-delimited column list for COPY (optional)."""
    if not is_blank(config.get("columnList")):
        state.cluster["columnList"] = _text(config["columnList"])
    return state


def truncate_table(config: Config, state: PipelineState) -> PipelineState:
    state.cluster["truncateTarget"] = coerce_bool(config.get("truncateTable"))
    return state


def user_name(config: Config, state: PipelineState) -> PipelineState:
    value = require_not_blank(config.get("userName"), "You must provide a username", "userName")
    state.cluster["connectUser"] = _text(value)
    return state


def user_password(config: Config, state: PipelineState) -> PipelineState:
    """Database password, stored KMS-encrypted."""
    value = require_not_blank(config.get("userPwd"), "You must provide a password", "userPwd")
    state.cluster["connectPassword"] = state.require_crypto().encrypt_to_string(_text(value))
    return state


# =======================
# DATA FORMAT
# =======================

def data_format(config: Config, state: PipelineState) -> PipelineState:
    """Data format: CSV, JSON or AVRO."""
    message = f"You must provide a data format from {', '.join(DATA_FORMATS)}"
    value = require_not_blank(config.get("df"), message, "df")
    fmt = _text(value).strip().upper()
    require_in_set(DATA_FORMATS, fmt, message, "df")
    state.item["dataFormat"] = fmt
    return state


def csv_delimiter(config: Config, state: PipelineState) -> PipelineState:
    """Field delimiter, required for CSV and ignored otherwise."""
    if state.data_format != "CSV":
        return state

    value = config.get("csvDelimiter")
    # A single space or tab is a legitimate delimiter
    if value is None or value == "":
        raise ValidationError("You must provide the delimiter for CSV input", "csvDelimiter")
    state.item["csvDelimiter"] = _text(value)
    return state


def json_paths(config: Config, state: PipelineState) -> PipelineState:
    """JSONPaths file location for JSON or AVRO (optional, auto when absent)."""
    if state.data_format not in ("JSON", "AVRO"):
        return state

    if not is_blank(config.get("jsonPaths")):
        state.item["jsonPath"] = _text(config["jsonPaths"])
    return state


# =======================
# MANIFESTS
# =======================

def manifest_bucket(config: Config, state: PipelineState) -> PipelineState:
    value = require_not_blank(
        config.get("manifestBucket"),
        "You must provide a bucket name for manifest file storage",
        "manifestBucket",
    )
    state.item["manifestBucket"] = _text(value)
    return state


def manifest_prefix(config: Config, state: PipelineState) -> PipelineState:
    value = require_not_blank(
        config.get("manifestPrefix"), "You must provide a prefix for manifests", "manifestPrefix"
    )
    state.item["manifestKey"] = _text(value)
    return state


def failed_manifest_prefix(config: Config, state: PipelineState) -> PipelineState:
    value = require_not_blank(
        config.get("failedManifestPrefix"),
        "You must provide a prefix for failed load manifests",
        "failedManifestPrefix",
    )
    state.item["failedManifestKey"] = _text(value)
    return state


# =======================
# CREDENTIALS
# =======================

def access_key(config: Config, state: PipelineState) -> PipelineState:
    """Access key used by COPY; the loader's execution role is used when absent."""
    if config.get("accessKey"):
        state.item["accessKeyForS3"] = _text(config["accessKey"])
    return state


def secret_key(config: Config, state: PipelineState) -> PipelineState:
    """Secret key used by COPY, stored KMS-encrypted."""
    if config.get("secretKey"):
        state.item["secretKeyForS3"] = state.require_crypto().encrypt_to_string(_text(config["secretKey"]))
    return state


# =======================
# NOTIFICATIONS & BATCHING
# =======================

def success_topic(config: Config, state: PipelineState) -> PipelineState:
    if not is_blank(config.get("successTopic")):
        state.item["successTopicARN"] = _text(config["successTopic"])
    return state


def failure_topic(config: Config, state: PipelineState) -> PipelineState:
    if not is_blank(config.get("failureTopic")):
        state.item["failureTopicARN"] = _text(config["failureTopic"])
    return state


def batch_size(config: Config, state: PipelineState) -> PipelineState:
    """Number of files buffered before a load."""
    if not is_blank(config.get("batchSize")):
        state.item["batchSize"] = coerce_int(config["batchSize"], "batchSize")
    return state


def batch_size_bytes(config: Config, state: PipelineState) -> PipelineState:
    """Bytes buffered before a load."""
    if not is_blank(config.get("batchSizeBytes")):
        state.item["batchSizeBytes"] = coerce_int(config["batchSizeBytes"], "batchSizeBytes")
    return state


def batch_timeout_secs(config: Config, state: PipelineState) -> PipelineState:
    """Maximum age of a batch before it is loaded."""
    if not is_blank(config.get("batchTimeoutSecs")):
        state.item["batchTimeoutSecs"] = coerce_int(config["batchTimeoutSecs"], "batchTimeoutSecs")
    return state


def copy_options(config: Config, state: PipelineState) -> PipelineState:
    if not is_blank(config.get("copyOptions")):
        state.item["copyOptions"] = _text(config["copyOptions"])
    return state


def symmetric_key(config: Config, state: PipelineState) -> PipelineState:
    """Master symmetric key for client-side encrypted files, stored KMS-encrypted."""
    if not is_blank(config.get("symmetricKey")):
        state.item["masterSymmetricKey"] = state.require_crypto().encrypt_to_string(
            _text(config["symmetricKey"])
        )
    return state


# =======================
# FINALIZE
# =======================

def build_record(state: PipelineState) -> LoaderConfiguration:
    """
    Validate the accumulated attributes into a LoaderConfiguration.

    Raises:
        ValidationError: If the attributes do not form a complete record
    """
    try:
        return LoaderConfiguration.model_validate({**state.item, "loadClusters": [state.cluster]})
    except ModelValidationError as e:
        raise ValidationError(f"Incomplete loader configuration: {e}") from e


def finalize(config: Config, state: PipelineState) -> PipelineState:
    """Validate the complete record and hand it to the store."""
    record = build_record(state)
    store = state.store_factory(state.clients)
    store.persist(record)
    state.record = record
    return state
