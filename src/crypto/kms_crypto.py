"""
KMS encryption of loader secrets.

Passwords and keys are encrypted under the loader's master key before they
are stored. The loader function later passes the stored string straight to
KMS Decrypt, so the string form is the base64 text of the ciphertext blob.
"""

import base64
import os
from dataclasses import dataclass
from typing import Any

from botocore.exceptions import BotoCoreError, ClientError

from src.core.errors import EncryptionError
from src.observability.logger import get_logger
from src.observability.metrics import secrets_encrypted_total

logger = get_logger(__name__)

DEFAULT_KEY_ALIAS = "alias/LambaRedshiftLoaderKey"


@dataclass(frozen=True)
class EncryptedValue:
    """
    Opaque KMS ciphertext envelope.

    Attributes:
        ciphertext_blob: Ciphertext returned by KMS Encrypt
        key_id: ARN of the key that encrypted it
    """

    ciphertext_blob: bytes
    key_id: str

    def __repr__(self) -> str:
        return f"EncryptedValue(key_id={self.key_id!r}, size={len(self.ciphertext_blob)})"


def to_lambda_string_format(envelope: EncryptedValue) -> str:
    """
    Render an envelope as the string the loader function decrypts.

    Args:
        envelope: Value returned by KmsCrypto.encrypt

    Returns:
        Base64 text of the ciphertext blob
    """
    return base64.b64encode(envelope.ciphertext_blob).decode("ascii")


class KmsCrypto:
    """
    Encrypts secret values with the loader master key.

    The master key is looked up by alias on first use and created when the
    alias does not exist yet.
    """

    def __init__(self, kms_client: Any, key_alias: str | None = None) -> None:
        """
        Initialize the encryption adapter.

        Args:
            kms_client: boto3 KMS client for the configured region
            key_alias: Master key alias (defaults to env var LOADER_KMS_KEY_ALIAS)
        """
        self.kms = kms_client
        self.key_alias = key_alias or os.getenv("LOADER_KMS_KEY_ALIAS", DEFAULT_KEY_ALIAS)
        self._key_id: str | None = None

    def ensure_master_key(self) -> str:
        """
        Resolve the master key, creating it and its alias if missing.

        Returns:
            Key id of the master key

        Raises:
            EncryptionError: If KMS cannot describe or create the key
        """
        if self._key_id:
            return self._key_id

        try:
            response = self.kms.describe_key(KeyId=self.key_alias)
            self._key_id = response["KeyMetadata"]["KeyId"]
        except ClientError as e:
            if e.response.get("Error", {}).get("Code") != "NotFoundException":
                raise EncryptionError(f"Unable to describe KMS key {self.key_alias}: {e}") from e
            self._key_id = self._create_master_key()
        except BotoCoreError as e:
            raise EncryptionError(f"Unable to describe KMS key {self.key_alias}: {e}") from e

        return self._key_id

    def _create_master_key(self) -> str:
        logger.info(f"Creating KMS master key {self.key_alias}")
        try:
            response = self.kms.create_key(
                Description="Lambda Redshift Loader master encryption key",
                KeyUsage="ENCRYPT_DECRYPT",
            )
            key_id = response["KeyMetadata"]["KeyId"]
            self.kms.create_alias(AliasName=self.key_alias, TargetKeyId=key_id)
        except (ClientError, BotoCoreError) as e:
            raise EncryptionError(f"Unable to create KMS key {self.key_alias}: {e}") from e
        return key_id

    def encrypt(self, plaintext: str) -> EncryptedValue:
        """
        Encrypt a secret value.

        Args:
            plaintext: Secret to encrypt

        Returns:
            EncryptedValue envelope

        Raises:
            EncryptionError: If the value is empty or KMS rejects the call
        """
        if not plaintext:
            raise EncryptionError("Refusing to encrypt an empty value")

        key_id = self.ensure_master_key()

        try:
            response = self.kms.encrypt(KeyId=key_id, Plaintext=plaintext.encode("utf-8"))
        except (ClientError, BotoCoreError) as e:
            raise EncryptionError(f"KMS encrypt failed: {e}") from e

        secrets_encrypted_total.inc()
        return EncryptedValue(ciphertext_blob=response["CiphertextBlob"], key_id=response["KeyId"])

    def encrypt_to_string(self, plaintext: str) -> str:
        """Encrypt a value and render it in loader string format."""
        return to_lambda_string_format(self.encrypt(plaintext))
