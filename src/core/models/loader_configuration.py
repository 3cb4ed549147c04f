"""
LoaderConfiguration model representing one persisted loader setup record.
"""

from typing import Any, Literal

from boto3.dynamodb.types import TypeSerializer
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .load_cluster import LoadCluster

DataFormat = Literal["CSV", "JSON", "AVRO"]
DATA_FORMATS: tuple[str, ...] = ("CSV", "JSON", "AVRO")

_serializer = TypeSerializer()


class LoaderConfiguration(BaseModel):
    """
    Configuration record for one S3 prefix → Redshift table loader.

    Stored in the loader configuration table keyed by s3_prefix. Optional
    attributes that were not supplied are left out of the stored item
    entirely rather than written as empty values.

    Attributes:
        s3_prefix: Bucket and prefix watched for new files (hash key)
        current_batch: Identifier of the open batch, fresh per setup run
        version: Version of the setup tool that wrote the record
        load_clusters: Exactly one target cluster
        data_format: CSV, JSON or AVRO
        csv_delimiter: Field delimiter, present only for CSV
        json_path: JSONPaths file location, only for JSON/AVRO
        manifest_bucket: Bucket for COPY manifests
        manifest_key: Prefix for COPY manifests
        failed_manifest_key: Prefix for manifests of failed loads
        access_key_for_s3: Access key used by COPY (role credentials if absent)
        secret_key_for_s3: KMS-encrypted secret key
        master_symmetric_key: KMS-encrypted client-side encryption key
        batch_size: Files buffered before a load
        batch_size_bytes: Bytes buffered before a load
        batch_timeout_secs: Maximum batch age before a load
        copy_options: Extra COPY options appended verbatim
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    s3_prefix: str = Field(..., min_length=1, alias="s3Prefix")
    current_batch: str = Field(..., min_length=1, alias="currentBatch")
    version: str = Field(..., min_length=1)
    load_clusters: list[LoadCluster] = Field(..., min_length=1, max_length=1, alias="loadClusters")

    filename_filter_regex: str | None = Field(None, alias="filenameFilterRegex")
    data_format: DataFormat = Field(..., alias="dataFormat")
    csv_delimiter: str | None = Field(None, alias="csvDelimiter")
    json_path: str | None = Field(None, alias="jsonPath")

    manifest_bucket: str = Field(..., min_length=1, alias="manifestBucket")
    manifest_key: str = Field(..., min_length=1, alias="manifestKey")
    failed_manifest_key: str = Field(..., min_length=1, alias="failedManifestKey")

    access_key_for_s3: str | None = Field(None, alias="accessKeyForS3")
    secret_key_for_s3: str | None = Field(None, alias="secretKeyForS3")
    master_symmetric_key: str | None = Field(None, alias="masterSymmetricKey")

    success_topic_arn: str | None = Field(None, alias="successTopicARN")
    failure_topic_arn: str | None = Field(None, alias="failureTopicARN")

    batch_size: int | None = Field(None, alias="batchSize")
    batch_size_bytes: int | None = Field(None, alias="batchSizeBytes")
    batch_timeout_secs: int | None = Field(None, alias="batchTimeoutSecs")

    copy_options: str | None = Field(None, alias="copyOptions")

    @field_validator("csv_delimiter")
    @classmethod
    def check_delimiter_matches_format(cls, v, info):
        """A delimiter only makes sense for CSV input."""
        if v is not None and info.data.get("data_format") != "CSV":
            raise ValueError("csvDelimiter is only valid for CSV data")
        return v

    @field_validator("json_path")
    @classmethod
    def check_json_path_matches_format(cls, v, info):
        """A JSONPaths file only makes sense for JSON or AVRO input."""
        if v is not None and info.data.get("data_format") == "CSV":
            raise ValueError("jsonPath is not valid for CSV data")
        return v

    @property
    def cluster(self) -> LoadCluster:
        """The single load cluster of this configuration."""
        return self.load_clusters[0]

    def to_document(self) -> dict[str, Any]:
        """Plain dict keyed by stored attribute names, absent optionals dropped."""
        return self.model_dump(by_alias=True, exclude_none=True)

    def to_item(self) -> dict[str, dict[str, Any]]:
        """DynamoDB attribute-value item for PutItem."""
        return {key: _serializer.serialize(value) for key, value in self.to_document().items()}
