"""
Pytest configuration and fixtures for loader setup tests

This module provides fake AWS clients and shared input bundles for unit,
integration, and E2E tests. Tests that need exact AWS request shapes use
botocore's Stubber on real boto3 clients instead.
"""
import pytest
from botocore.exceptions import ClientError

from src.aws.clients import RegionClients
from src.store.config_store import reset_provisioners


# =======================
# PYTEST CONFIGURATION
# =======================

def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line(
        "markers", "unit: Unit tests that don't require external services"
    )
    config.addinivalue_line(
        "markers", "integration: Tests that run the setup pipeline against fake AWS clients"
    )
    config.addinivalue_line(
        "markers", "e2e: End-to-end tests that run the CLI"
    )


def client_error(code: str, operation: str, status: int = 400) -> ClientError:
    """Build a botocore ClientError with the given error code"""
    return ClientError(
        {"Error": {"Code": code, "Message": f"{code} raised by fake"},
         "ResponseMetadata": {"HTTPStatusCode": status}},
        operation,
    )


# =======================
# FAKE AWS CLIENTS
# =======================

class FakeKms:
    """KMS fake: one existing master key, reversible fake ciphertext"""

    key_id = "1234abcd-12ab-34cd-56ef-1234567890ab"

    def __init__(self, fail_encrypt: bool = False):
        self.fail_encrypt = fail_encrypt
        self.encrypted: list[bytes] = []

    def describe_key(self, KeyId):
        return {"KeyMetadata": {"KeyId": self.key_id}}

    def encrypt(self, KeyId, Plaintext):
        if self.fail_encrypt:
            raise client_error("AccessDeniedException", "Encrypt")
        self.encrypted.append(Plaintext)
        return {
            "CiphertextBlob": b"\x01\x02\x03" + Plaintext[::-1],
            "KeyId": f"arn:aws:kms:us-east-1:111122223333:key/{KeyId}",
        }


class FakeWaiter:
    def wait(self, **kwargs):
        return None


class FakeDynamoDB:
    """DynamoDB fake recording created tables and written items"""

    def __init__(self, fail_put: bool = False):
        self.fail_put = fail_put
        self.tables: set[str] = set()
        self.items: list[dict] = []

    def describe_table(self, TableName):
        if TableName not in self.tables:
            raise client_error("ResourceNotFoundException", "DescribeTable")
        return {"Table": {"TableName": TableName, "TableStatus": "ACTIVE"}}

    def create_table(self, TableName, **kwargs):
        self.tables.add(TableName)
        return {"TableDescription": {"TableName": TableName, "TableStatus": "CREATING"}}

    def get_waiter(self, name):
        return FakeWaiter()

    def put_item(self, TableName, Item):
        if self.fail_put:
            raise client_error("ProvisionedThroughputExceededException", "PutItem")
        self.items.append({"TableName": TableName, "Item": Item})
        return {}


class FakeS3:
    def __init__(self, missing_buckets: tuple[str, ...] = ()):
        self.missing_buckets = set(missing_buckets)

    def head_bucket(self, Bucket):
        if Bucket in self.missing_buckets:
            raise client_error("404", "HeadBucket", status=404)
        return {}


class FakeLambda:
    def __init__(self):
        self.permissions: list[dict] = []

    def add_permission(self, **kwargs):
        if any(p["StatementId"] == kwargs["StatementId"] for p in self.permissions):
            raise client_error("ResourceConflictException", "AddPermission", status=409)
        self.permissions.append(kwargs)
        return {"Statement": "{}"}


class FakeAws:
    """
    Client factory handing out fake RegionClients, one bundle per region
    """

    def __init__(self, fail_encrypt: bool = False, fail_put: bool = False, missing_buckets=()):
        self.fail_encrypt = fail_encrypt
        self.fail_put = fail_put
        self.missing_buckets = missing_buckets
        self.bundles: dict[str, RegionClients] = {}
        self.requested: list[str] = []

    def __call__(self, region: str) -> RegionClients:
        self.requested.append(region)
        if region not in self.bundles:
            self.bundles[region] = RegionClients(
                region=region,
                dynamodb=FakeDynamoDB(fail_put=self.fail_put),
                kms=FakeKms(fail_encrypt=self.fail_encrypt),
                s3=FakeS3(self.missing_buckets),
                lambda_=FakeLambda(),
            )
        return self.bundles[region]

    def written_items(self) -> list[dict]:
        return [entry["Item"] for bundle in self.bundles.values() for entry in bundle.dynamodb.items]


class RecordingStore:
    """Persistence adapter that keeps records in memory"""

    persisted: list = []

    def __init__(self, clients):
        self.clients = clients

    def persist(self, record):
        RecordingStore.persisted.append(record)


# =======================
# FIXTURES
# =======================

@pytest.fixture
def fake_aws() -> FakeAws:
    """Fake client factory with working KMS and DynamoDB"""
    return FakeAws()


@pytest.fixture
def make_fake_aws():
    """FakeAws class, for tests that need failing clients"""
    return FakeAws


@pytest.fixture
def recording_store():
    """RecordingStore class with an empty record list"""
    RecordingStore.persisted = []
    yield RecordingStore
    RecordingStore.persisted = []


@pytest.fixture
def csv_bundle() -> dict:
    """A complete, valid CSV loader bundle"""
    return {
        "region": "us-east-1",
        "s3Prefix": "s3://mybucket/incoming/",
        "clusterEndpoint": "db.example.com",
        "clusterPort": "5439",
        "userName": "admin",
        "userPwd": "secret",
        "table": "events",
        "df": "csv",
        "csvDelimiter": ",",
        "manifestBucket": "mb",
        "manifestPrefix": "mp/",
        "failedManifestPrefix": "fmp/",
    }


@pytest.fixture
def json_bundle(csv_bundle) -> dict:
    """A complete, valid JSON loader bundle"""
    bundle = dict(csv_bundle, df="json")
    del bundle["csvDelimiter"]
    return bundle


# =======================
# CLEANUP FIXTURES
# =======================

@pytest.fixture(autouse=True)
def clean_provisioners():
    """Drop cached provisioners so each test provisions from scratch"""
    reset_provisioners()
    yield
    reset_provisioners()


@pytest.fixture(autouse=True)
def loader_env(monkeypatch):
    """Keep tests independent of the developer's loader environment"""
    for name in (
        "LOADER_CONFIG_TABLE",
        "LOADER_BATCH_TABLE",
        "LOADER_KMS_KEY_ALIAS",
        "LOADER_FUNCTION_NAME",
        "AWS_PROFILE",
    ):
        monkeypatch.delenv(name, raising=False)
