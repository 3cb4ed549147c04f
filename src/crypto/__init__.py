"""
Secret encryption for stored loader configuration.
"""

from .kms_crypto import DEFAULT_KEY_ALIAS, EncryptedValue, KmsCrypto, to_lambda_string_format

__all__ = [
    "DEFAULT_KEY_ALIAS",
    "EncryptedValue",
    "KmsCrypto",
    "to_lambda_string_format",
]
