"""Encryption keys and secrets."""

import json
import re
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from ..base import BaseAttributes, NestedBlock, merge_attributes, validate_attributes, write_attributes
from ..reference import ResourceReference
from ..registry import register_resource
from ..types import AwsRegion, PolicyDocument, Tags, is_interpolation
from ...synthesizer.terraform import TerraformSynthesizer
from ...utils.logging import get_logger

logger = get_logger("resources.aws.security")

KMS_KEY_OUTPUTS = ["id", "arn", "key_id"]
SECRET_OUTPUTS = ["id", "arn", "name", "replica"]

SECRET_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9/_+=.@-]+$")
KMS_KEY_ID_PATTERNS = [
    re.compile(r"^[a-f0-9-]{36}$"),
    re.compile(r"^arn:aws:kms:[a-z0-9-]+:\d{12}:key/[a-f0-9-]{36}$"),
    re.compile(r"^alias/[a-zA-Z0-9:/_-]+$"),
    re.compile(r"^arn:aws:kms:[a-z0-9-]+:\d{12}:alias/[a-zA-Z0-9:/_-]+$"),
]


def check_kms_key_id(value: Optional[str]) -> Optional[str]:
    """Accept key ids, key ARNs, alias names and alias ARNs."""
    if value is None or is_interpolation(value):
        return value
    if not any(pattern.match(value) for pattern in KMS_KEY_ID_PATTERNS):
        raise ValueError(f"Invalid KMS key ID format: {value}")
    return value


class KmsKeyAttributes(BaseAttributes):
    description: Optional[str] = None
    key_usage: Literal["ENCRYPT_DECRYPT", "SIGN_VERIFY", "GENERATE_VERIFY_MAC"] = "ENCRYPT_DECRYPT"
    customer_master_key_spec: str = "SYMMETRIC_DEFAULT"
    deletion_window_in_days: int = Field(30, ge=7, le=30)
    enable_key_rotation: bool = False
    is_enabled: Optional[bool] = None
    multi_region: Optional[bool] = None
    policy: Optional[PolicyDocument] = None
    tags: Tags = Field(default_factory=dict)

    @model_validator(mode="after")
    def check_rotation(self) -> "KmsKeyAttributes":
        if self.enable_key_rotation and not self.is_symmetric:
            raise ValueError("Key rotation is only supported for symmetric ENCRYPT_DECRYPT keys")
        return self

    @property
    def is_symmetric(self) -> bool:
        return self.key_usage == "ENCRYPT_DECRYPT" and self.customer_master_key_spec == "SYMMETRIC_DEFAULT"


class SecretReplica(NestedBlock):
    region: AwsRegion
    kms_key_id: Optional[str] = None

    @field_validator("kms_key_id")
    @classmethod
    def check_key(cls, value: Optional[str]) -> Optional[str]:
        return check_kms_key_id(value)


class SecretsManagerSecretAttributes(BaseAttributes):
    name: Optional[str] = None
    name_prefix: Optional[str] = None
    description: Optional[str] = None
    kms_key_id: Optional[str] = None
    policy: Optional[PolicyDocument] = None
    recovery_window_in_days: Optional[int] = None
    force_overwrite_replica_secret: Optional[bool] = None
    replica: List[SecretReplica] = Field(default_factory=list)
    tags: Tags = Field(default_factory=dict)

    @field_validator("name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None or is_interpolation(value):
            return value
        if len(value) > 512:
            raise ValueError(f"Secret name too long: {len(value)} characters (max 512)")
        if value.startswith("/") or value.endswith("/"):
            raise ValueError(f"Secret name cannot start or end with slash: {value}")
        if "//" in value:
            raise ValueError(f"Secret name cannot contain consecutive slashes: {value}")
        if not SECRET_NAME_PATTERN.match(value):
            raise ValueError(f"Secret name contains invalid characters: {value}")
        return value

    @field_validator("kms_key_id")
    @classmethod
    def check_key(cls, value: Optional[str]) -> Optional[str]:
        return check_kms_key_id(value)

    @field_validator("policy")
    @classmethod
    def check_policy(cls, value: Optional[str]) -> Optional[str]:
        if value is None or is_interpolation(value):
            return value
        document = json.loads(value)
        if not (document.get("Version") and document.get("Statement")):
            raise ValueError("Secret policy should have Version and Statement fields")
        return value

    @field_validator("recovery_window_in_days")
    @classmethod
    def check_recovery_window(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value != 0 and not 7 <= value <= 30:
            raise ValueError("recovery_window_in_days must be 0 (force delete) or between 7 and 30")
        return value

    @model_validator(mode="after")
    def check_replicas(self) -> "SecretsManagerSecretAttributes":
        if self.name is not None and self.name_prefix is not None:
            raise ValueError("Cannot specify both 'name' and 'name_prefix'")
        regions = [replica.region for replica in self.replica]
        if len(set(regions)) != len(regions):
            raise ValueError("Duplicate regions found in replica configuration")
        return self

    @property
    def is_cross_region(self) -> bool:
        return bool(self.replica)

    @property
    def recovery_period_days(self) -> int:
        return 30 if self.recovery_window_in_days is None else self.recovery_window_in_days

    @property
    def encryption_details(self) -> str:
        if self.kms_key_id is not None:
            return f"Custom KMS key: {self.kms_key_id}"
        return "AWS managed key (aws/secretsmanager)"


@register_resource("aws_kms_key", KmsKeyAttributes, category="security", outputs=KMS_KEY_OUTPUTS)
def aws_kms_key(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                **kwargs: Any) -> ResourceReference:
    """KMS customer managed key."""
    attrs = validate_attributes(KmsKeyAttributes, "aws_kms_key", name, merge_attributes(attributes, kwargs))
    if attrs.is_symmetric and not attrs.enable_key_rotation:
        logger.info(f"aws_kms_key.{name} has automatic key rotation disabled")
    with synth.resource("aws_kms_key", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_kms_key", name, attrs, KMS_KEY_OUTPUTS)


@register_resource("aws_secretsmanager_secret", SecretsManagerSecretAttributes, category="security",
                   outputs=SECRET_OUTPUTS)
def aws_secretsmanager_secret(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                              **kwargs: Any) -> ResourceReference:
    """
    Secrets Manager secret, optionally replicated to other regions.

    The secret ``name`` attribute clashes with the resource name parameter,
    so pass it in the ``attributes`` mapping.
    """
    attrs = validate_attributes(SecretsManagerSecretAttributes, "aws_secretsmanager_secret", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_secretsmanager_secret", name) as r:
        write_attributes(r, attrs, blocks=("replica",))
    logger.debug(f"aws_secretsmanager_secret.{name}: {attrs.encryption_details}")
    return ResourceReference.build("aws_secretsmanager_secret", name, attrs, SECRET_OUTPUTS)
