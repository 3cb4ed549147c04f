"""
Integration tests for the loader setup pipeline.

Runs the full step sequence with the real ConfigStore and Provisioner
against fake AWS clients.
"""

import json

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from src.core.errors import EncryptionError, InvalidRegionError, StorageError, ValidationError
from src.setup import STEPS, run_pipeline, setup
from src.setup.pipeline import __version__
from src.store.provisioning import DEFAULT_BATCH_TABLE, DEFAULT_CONFIG_TABLE


@pytest.mark.integration
class TestSetupPipeline:
    """Integration tests for run_pipeline"""

    def test_step_order(self):
        names = [step.__name__ for step in STEPS]
        assert names[0] == "region"
        assert names[-1] == "finalize"
        assert names.index("user_password") < names.index("data_format") < names.index("csv_delimiter")
        assert len(names) == 28

    def test_csv_loader_written(self, fake_aws, csv_bundle):
        """A complete CSV bundle produces one stored record"""
        record = run_pipeline(csv_bundle, client_factory=fake_aws)

        items = fake_aws.written_items()
        assert len(items) == 1
        item = items[0]

        assert item["s3Prefix"] == {"S": "mybucket/incoming"}
        assert item["dataFormat"] == {"S": "CSV"}
        assert item["csvDelimiter"] == {"S": ","}
        assert item["manifestBucket"] == {"S": "mb"}
        assert item["manifestKey"] == {"S": "mp/"}
        assert item["failedManifestKey"] == {"S": "fmp/"}
        assert item["version"] == {"S": __version__}
        assert item["currentBatch"] == {"S": record.current_batch}
        assert "jsonPath" not in item

        cluster = item["loadClusters"]["L"][0]["M"]
        assert cluster["clusterPort"] == {"N": "5439"}
        assert cluster["targetTable"] == {"S": "events"}
        assert cluster["connectUser"] == {"S": "admin"}
        assert cluster["connectPassword"]["S"] != "secret"
        assert cluster["useSSL"] == {"BOOL": False}

        assert record.cluster.cluster_port == 5439

    def test_tables_provisioned_before_write(self, fake_aws, csv_bundle):
        run_pipeline(csv_bundle, client_factory=fake_aws)

        dynamodb = fake_aws.bundles["us-east-1"].dynamodb
        assert dynamodb.tables == {DEFAULT_CONFIG_TABLE, DEFAULT_BATCH_TABLE}
        assert dynamodb.items[0]["TableName"] == DEFAULT_CONFIG_TABLE

    def test_invoke_permission_when_function_configured(self, fake_aws, csv_bundle, monkeypatch):
        monkeypatch.setenv("LOADER_FUNCTION_NAME", "LambdaRedshiftLoader")

        run_pipeline(csv_bundle, client_factory=fake_aws)

        permissions = fake_aws.bundles["us-east-1"].lambda_.permissions
        assert permissions[0]["SourceArn"] == "arn:aws:s3:::mybucket"

    def test_secret_key_omitted_has_no_attribute(self, fake_aws, csv_bundle):
        """An omitted secret key leaves no secretKeyForS3 attribute at all"""
        run_pipeline(csv_bundle, client_factory=fake_aws)

        item = fake_aws.written_items()[0]
        assert "secretKeyForS3" not in item
        assert "accessKeyForS3" not in item

    def test_all_optional_fields(self, fake_aws, csv_bundle):
        bundle = dict(
            csv_bundle,
            filenameFilter=r".*\.csv$",
            clusterUseSSL="Y",
            clusterDB="analytics",
            columnList="id,name",
            truncateTable="true",
            accessKey="AKIAEXAMPLE",
            secretKey="wJalrXUtnFEMI",
            successTopic="arn:aws:sns:us-east-1:1:ok",
            failureTopic="arn:aws:sns:us-east-1:1:failed",
            batchSize="10",
            batchSizeBytes=1048576,
            batchTimeoutSecs="300",
            copyOptions="GZIP",
            symmetricKey="c3ltbWV0cmlj",
        )

        record = run_pipeline(bundle, client_factory=fake_aws)

        assert record.filename_filter_regex == r".*\.csv$"
        assert record.cluster.use_ssl is True
        assert record.cluster.cluster_db == "analytics"
        assert record.cluster.column_list == "id,name"
        assert record.cluster.truncate_target is True
        assert record.access_key_for_s3 == "AKIAEXAMPLE"
        assert record.secret_key_for_s3 not in (None, "wJalrXUtnFEMI")
        assert record.master_symmetric_key not in (None, "c3ltbWV0cmlj")
        assert record.success_topic_arn.endswith(":ok")
        assert record.failure_topic_arn.endswith(":failed")
        assert (record.batch_size, record.batch_size_bytes, record.batch_timeout_secs) == (10, 1048576, 300)
        assert record.copy_options == "GZIP"

    def test_plaintext_secrets_never_stored(self, fake_aws, csv_bundle):
        bundle = dict(csv_bundle, userPwd="pw-123456", secretKey="sk-123456", symmetricKey="mk-123456")

        run_pipeline(bundle, client_factory=fake_aws)

        stored = json.dumps(fake_aws.written_items()[0])
        for secret in ("pw-123456", "sk-123456", "mk-123456"):
            assert secret not in stored

    @pytest.mark.parametrize("fmt", ["json", "avro"])
    def test_json_formats_have_no_delimiter(self, fake_aws, json_bundle, fmt):
        bundle = dict(json_bundle, df=fmt, csvDelimiter="|")

        record = run_pipeline(bundle, client_factory=fake_aws)

        item = fake_aws.written_items()[0]
        assert "csvDelimiter" not in item
        assert "jsonPath" not in item
        assert record.data_format == fmt.upper()

    def test_json_paths_stored_when_given(self, fake_aws, json_bundle):
        run_pipeline(dict(json_bundle, jsonPaths="s3://mb/paths.json"), client_factory=fake_aws)

        assert fake_aws.written_items()[0]["jsonPath"] == {"S": "s3://mb/paths.json"}

    def test_fresh_batch_id_per_run(self, fake_aws, csv_bundle):
        first = run_pipeline(csv_bundle, client_factory=fake_aws)
        second = run_pipeline(csv_bundle, client_factory=fake_aws)

        assert first.current_batch != second.current_batch

    def test_programmatic_setup_rewrites_record(self, fake_aws, csv_bundle):
        """setup() persists an already-built record with explicit clients"""
        record = run_pipeline(csv_bundle, client_factory=fake_aws)

        setup(record, fake_aws.bundles["us-east-1"])

        items = fake_aws.written_items()
        assert len(items) == 2
        assert items[0] == items[1]


@pytest.mark.integration
class TestSetupPipelineFailures:
    """Failure handling: nothing is written unless every step passed"""

    @pytest.mark.parametrize("region", [None, "", "moon-1", "cn-north-1"])
    def test_invalid_region_never_writes(self, fake_aws, csv_bundle, region):
        bundle = dict(csv_bundle, region=region)

        with pytest.raises(InvalidRegionError):
            run_pipeline(bundle, client_factory=fake_aws)

        assert fake_aws.bundles == {}

    @pytest.mark.parametrize("field", [
        "s3Prefix", "clusterEndpoint", "clusterPort", "table", "userName", "userPwd",
        "df", "csvDelimiter", "manifestBucket", "manifestPrefix", "failedManifestPrefix",
    ])
    def test_missing_required_field_never_writes(self, fake_aws, csv_bundle, field):
        bundle = dict(csv_bundle)
        del bundle[field]

        with pytest.raises(ValidationError) as exc_info:
            run_pipeline(bundle, client_factory=fake_aws)

        assert exc_info.value.field_name == field
        assert fake_aws.written_items() == []

    def test_invalid_format_never_writes(self, fake_aws, csv_bundle):
        with pytest.raises(ValidationError):
            run_pipeline(dict(csv_bundle, df="xml"), client_factory=fake_aws)

        assert fake_aws.written_items() == []

    def test_encryption_failure_is_fatal(self, make_fake_aws, csv_bundle):
        fake_aws = make_fake_aws(fail_encrypt=True)

        with pytest.raises(EncryptionError):
            run_pipeline(csv_bundle, client_factory=fake_aws)

        assert fake_aws.written_items() == []

    def test_storage_failure_is_fatal(self, make_fake_aws, csv_bundle):
        fake_aws = make_fake_aws(fail_put=True)

        with pytest.raises(StorageError):
            run_pipeline(csv_bundle, client_factory=fake_aws)

    def test_missing_watched_bucket_never_writes(self, make_fake_aws, csv_bundle):
        fake_aws = make_fake_aws(missing_buckets=("mybucket",))

        with pytest.raises(ValidationError, match="does not exist"):
            run_pipeline(csv_bundle, client_factory=fake_aws)

        assert fake_aws.written_items() == []


@pytest.mark.integration
@settings(max_examples=25, suppress_health_check=[HealthCheck.function_scoped_fixture])
@given(region=st.text(max_size=20))
def test_property_unknown_region_never_writes(make_fake_aws, csv_bundle, region):
    """Property test: a region outside the allow-list never reaches the store"""
    if region.strip().lower() in {
        "ap-northeast-1", "ap-northeast-2", "ap-southeast-1", "ap-southeast-2", "eu-central-1",
        "eu-west-1", "sa-east-1", "us-east-1", "us-west-1", "us-west-2",
    }:
        return

    fake_aws = make_fake_aws()
    with pytest.raises(InvalidRegionError):
        run_pipeline(dict(csv_bundle, region=region), client_factory=fake_aws)
    assert fake_aws.written_items() == []
