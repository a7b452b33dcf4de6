"""RDS resources: DB subnet groups and DB instances."""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field, field_validator, model_validator
from ..base import BaseAttributes, merge_attributes, mutually_exclusive, validate_attributes, write_attributes
from ..reference import ResourceReference
from ..registry import register_resource
from ..types import AvailabilityZone, Tags, is_interpolation
from ...synthesizer.terraform import TerraformSynthesizer
from ...utils.logging import get_logger

logger = get_logger("resources.aws.database")

DB_SUBNET_GROUP_OUTPUTS = ["id", "arn", "name"]
DB_INSTANCE_OUTPUTS = ["id", "arn", "address", "endpoint", "hosted_zone_id", "resource_id", "status", "port"]

DbEngine = Literal[
    "mysql", "postgres", "mariadb",
    "oracle-ee", "oracle-se2",
    "sqlserver-ee", "sqlserver-se", "sqlserver-ex", "sqlserver-web",
    "aurora-mysql", "aurora-postgresql",
]


class DbSubnetGroupAttributes(BaseAttributes):
    name: Optional[str] = None
    name_prefix: Optional[str] = None
    description: Optional[str] = None
    subnet_ids: List[str]
    tags: Tags = Field(default_factory=dict)

    @field_validator("subnet_ids")
    @classmethod
    def check_subnets(cls, value: List[str]) -> List[str]:
        if len(value) < 2:
            raise ValueError("DB subnet group requires at least 2 subnets in different availability zones")
        return value

    @model_validator(mode="after")
    def check_name(self) -> "DbSubnetGroupAttributes":
        mutually_exclusive(self, "name", "name_prefix")
        return self


class DbInstanceAttributes(BaseAttributes):
    identifier: Optional[str] = None
    identifier_prefix: Optional[str] = None
    engine: DbEngine
    engine_version: Optional[str] = None
    instance_class: str
    allocated_storage: Optional[int] = Field(None, ge=20, le=65536)
    max_allocated_storage: Optional[int] = Field(None, ge=20, le=65536)
    storage_type: Optional[Literal["standard", "gp2", "gp3", "io1", "io2"]] = None
    storage_encrypted: bool = False
    kms_key_id: Optional[str] = None
    iops: Optional[int] = Field(None, ge=1000)
    db_name: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    manage_master_user_password: Optional[bool] = None
    db_subnet_group_name: Optional[str] = None
    vpc_security_group_ids: List[str] = Field(default_factory=list)
    availability_zone: Optional[AvailabilityZone] = None
    multi_az: bool = False
    publicly_accessible: bool = False
    backup_retention_period: Optional[int] = Field(None, ge=0, le=35)
    backup_window: Optional[str] = None
    maintenance_window: Optional[str] = None
    enabled_cloudwatch_logs_exports: List[str] = Field(default_factory=list)
    performance_insights_enabled: bool = False
    performance_insights_retention_period: Optional[int] = None
    auto_minor_version_upgrade: Optional[bool] = None
    deletion_protection: bool = False
    skip_final_snapshot: bool = True
    final_snapshot_identifier: Optional[str] = None
    tags: Tags = Field(default_factory=dict)

    @field_validator("instance_class")
    @classmethod
    def check_instance_class(cls, value: str) -> str:
        if not is_interpolation(value) and not value.startswith("db."):
            raise ValueError(f"instance_class '{value}' must start with 'db.'")
        return value

    @model_validator(mode="after")
    def check_instance(self) -> "DbInstanceAttributes":
        mutually_exclusive(self, "identifier", "identifier_prefix")
        mutually_exclusive(self, "password", "manage_master_user_password")
        if not self.is_aurora and self.allocated_storage is None:
            raise ValueError("allocated_storage is required for non-Aurora engines")
        if self.kms_key_id is not None and not self.storage_encrypted:
            raise ValueError("kms_key_id requires storage_encrypted to be true")
        if self.iops is not None and self.storage_type not in ("io1", "io2", "gp3"):
            raise ValueError("iops can only be set for io1, io2 or gp3 storage")
        if self.multi_az and self.availability_zone is not None:
            raise ValueError("Cannot specify availability_zone for a Multi-AZ instance")
        if self.performance_insights_retention_period is not None and not self.performance_insights_enabled:
            raise ValueError("performance_insights_retention_period requires performance_insights_enabled")
        if not self.skip_final_snapshot and self.final_snapshot_identifier is None:
            raise ValueError("final_snapshot_identifier is required when skip_final_snapshot is false")
        return self

    @property
    def is_aurora(self) -> bool:
        return self.engine.startswith("aurora")

    @property
    def engine_family(self) -> str:
        return self.engine.split("-")[0] if not self.is_aurora else self.engine.split("-")[1]


@register_resource("aws_db_subnet_group", DbSubnetGroupAttributes, category="database",
                   outputs=DB_SUBNET_GROUP_OUTPUTS)
def aws_db_subnet_group(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                        **kwargs: Any) -> ResourceReference:
    """DB subnet group spanning at least two subnets."""
    attrs = validate_attributes(DbSubnetGroupAttributes, "aws_db_subnet_group", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_db_subnet_group", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_db_subnet_group", name, attrs, DB_SUBNET_GROUP_OUTPUTS)


@register_resource("aws_db_instance", DbInstanceAttributes, category="database", outputs=DB_INSTANCE_OUTPUTS)
def aws_db_instance(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                    **kwargs: Any) -> ResourceReference:
    """RDS database instance."""
    attrs = validate_attributes(DbInstanceAttributes, "aws_db_instance", name, merge_attributes(attributes, kwargs))
    if attrs.password is not None and not is_interpolation(attrs.password):
        logger.warning(f"aws_db_instance.{name} sets a literal password; prefer manage_master_user_password")
    with synth.resource("aws_db_instance", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_db_instance", name, attrs, DB_INSTANCE_OUTPUTS)
