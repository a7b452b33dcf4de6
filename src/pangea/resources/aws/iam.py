"""IAM roles, policies and attachments."""

import fnmatch
import json
import re
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator, model_validator
from ..base import BaseAttributes, NestedBlock, merge_attributes, mutually_exclusive, validate_attributes, write_attributes
from ..reference import ResourceReference
from ..registry import register_resource
from ..types import PolicyDocument, Tags, is_interpolation
from ...synthesizer.terraform import TerraformSynthesizer
from ...utils.logging import get_logger

logger = get_logger("resources.aws.iam")

IAM_ROLE_OUTPUTS = ["id", "arn", "name", "unique_id", "create_date"]
IAM_POLICY_OUTPUTS = ["id", "arn", "name", "path", "policy_id", "attachment_count"]

PATH_PATTERN = re.compile(r"^/([\w+=,.@-]+/)*$")
MAX_POLICY_LENGTH = 6144
DANGEROUS_ACTIONS = ["iam:*", "iam:CreateRole", "iam:AttachRolePolicy", "iam:PutRolePolicy"]


def check_policy_statements(value: Optional[str]) -> Optional[str]:
    """Require a non-empty Statement list and keep the document within IAM's size limit."""
    if value is None or is_interpolation(value):
        return value
    if not json.loads(value).get("Statement"):
        raise ValueError("Policy document must have at least one statement")
    if len(value) > MAX_POLICY_LENGTH:
        raise ValueError(f"Policy document cannot exceed {MAX_POLICY_LENGTH} characters")
    return value


def validate_iam_path(value: str) -> str:
    if not PATH_PATTERN.match(value):
        raise ValueError("Path must start and end with '/' and contain only valid characters")
    if len(value) > 512:
        raise ValueError("Path cannot exceed 512 characters")
    return value


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def policy_statements(document: Optional[str]) -> List[Dict[str, Any]]:
    """Statements of a rendered policy document; empty for interpolations."""
    if document is None or is_interpolation(document):
        return []
    return _as_list(json.loads(document).get("Statement"))


class InlinePolicy(NestedBlock):
    name: str
    policy: PolicyDocument

    @field_validator("policy")
    @classmethod
    def check_policy(cls, value: str) -> str:
        return check_policy_statements(value)


class IamRoleAttributes(BaseAttributes):
    name: Optional[str] = Field(None, max_length=64)
    name_prefix: Optional[str] = Field(None, max_length=38)
    assume_role_policy: PolicyDocument
    description: Optional[str] = None
    path: str = "/"
    max_session_duration: Optional[int] = Field(None, ge=3600, le=43200)
    permissions_boundary: Optional[str] = None
    force_detach_policies: Optional[bool] = None
    inline_policies: List[InlinePolicy] = Field(default_factory=list)
    tags: Tags = Field(default_factory=dict)

    @field_validator("path")
    @classmethod
    def check_path(cls, value: str) -> str:
        return validate_iam_path(value)

    @model_validator(mode="after")
    def check_role(self) -> "IamRoleAttributes":
        mutually_exclusive(self, "name", "name_prefix")
        return self

    @property
    def trusted_services(self) -> List[str]:
        """Service principals allowed to assume the role."""
        services: List[str] = []
        for statement in policy_statements(self.assume_role_policy):
            principal = statement.get("Principal")
            if isinstance(principal, dict):
                services.extend(_as_list(principal.get("Service")))
        return services


class IamPolicyAttributes(BaseAttributes):
    name: Optional[str] = Field(None, max_length=128)
    name_prefix: Optional[str] = None
    path: str = "/"
    description: Optional[str] = None
    policy: PolicyDocument
    tags: Tags = Field(default_factory=dict)

    @field_validator("path")
    @classmethod
    def check_path(cls, value: str) -> str:
        return validate_iam_path(value)

    @field_validator("policy")
    @classmethod
    def check_policy(cls, value: str) -> str:
        return check_policy_statements(value)

    @model_validator(mode="after")
    def check_name(self) -> "IamPolicyAttributes":
        mutually_exclusive(self, "name", "name_prefix")
        return self

    @property
    def statements(self) -> List[Dict[str, Any]]:
        return policy_statements(self.policy)

    @property
    def uses_reserved_name(self) -> bool:
        return bool(self.name) and (self.name.startswith("AWS") or "Amazon" in self.name)

    def all_actions(self) -> List[str]:
        actions: List[str] = []
        for statement in self.statements:
            actions.extend(a for a in _as_list(statement.get("Action")) if a not in actions)
        return actions

    def all_resources(self) -> List[str]:
        resources: List[str] = []
        for statement in self.statements:
            resources.extend(r for r in _as_list(statement.get("Resource")) if r not in resources)
        return resources

    def allows_action(self, action: str) -> bool:
        """True if any Allow statement grants ``action``, honouring ``*`` wildcards."""
        for statement in self.statements:
            if statement.get("Effect") != "Allow":
                continue
            for pattern in _as_list(statement.get("Action")):
                if pattern == action or fnmatch.fnmatchcase(action, pattern):
                    return True
        return False

    def has_wildcard_permissions(self) -> bool:
        return any(
            statement.get("Effect") == "Allow" and (statement.get("Action") == "*" or statement.get("Resource") == "*")
            for statement in self.statements
        )

    def security_level(self) -> str:
        """
        Rough risk classification of the policy.

        Returns:
            "high_risk" for wildcard grants, "medium_risk" for IAM or
            role-assumption grants, otherwise "low_risk"
        """
        if self.has_wildcard_permissions():
            return "high_risk"
        if self.allows_action("iam:*") or self.allows_action("sts:AssumeRole"):
            return "medium_risk"
        return "low_risk"

    def complexity_score(self) -> int:
        conditions = sum(1 for statement in self.statements if statement.get("Condition"))
        return len(self.statements) + len(self.all_actions()) + len(self.all_resources()) + conditions * 2

    def security_warnings(self) -> List[str]:
        warnings = []
        if self.has_wildcard_permissions():
            warnings.append("Policy contains wildcard (*) permissions - consider principle of least privilege")
        for action in DANGEROUS_ACTIONS:
            if self.allows_action(action):
                warnings.append(f"Policy allows potentially dangerous action: {action}")
        if any(resource == "*" or resource.endswith(":root") for resource in self.all_resources()):
            warnings.append("Policy grants access to root resources - review necessity")
        return warnings


class IamRolePolicyAttachmentAttributes(BaseAttributes):
    role: str
    policy_arn: str


@register_resource("aws_iam_role", IamRoleAttributes, category="iam", outputs=IAM_ROLE_OUTPUTS)
def aws_iam_role(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                 **kwargs: Any) -> ResourceReference:
    """IAM role with an assume-role policy and optional inline policies."""
    attrs = validate_attributes(IamRoleAttributes, "aws_iam_role", name, merge_attributes(attributes, kwargs))
    with synth.resource("aws_iam_role", name) as r:
        write_attributes(r, attrs, skip=("inline_policies",))
        for inline in attrs.inline_policies:
            with r.block("inline_policy") as block:
                block.update(inline.to_dict())
    logger.debug(f"aws_iam_role.{name} trusts {attrs.trusted_services}")
    return ResourceReference.build("aws_iam_role", name, attrs, IAM_ROLE_OUTPUTS)


@register_resource("aws_iam_policy", IamPolicyAttributes, category="iam", outputs=IAM_POLICY_OUTPUTS)
def aws_iam_policy(synth: TerraformSynthesizer, name: str, attributes: Optional[Dict[str, Any]] = None, /,
                   **kwargs: Any) -> ResourceReference:
    """
    Managed IAM policy.

    Security findings (wildcards, privilege-escalation actions) are logged
    as warnings; they do not stop synthesis.
    """
    attrs = validate_attributes(IamPolicyAttributes, "aws_iam_policy", name, merge_attributes(attributes, kwargs))
    for warning in attrs.security_warnings():
        logger.warning(f"aws_iam_policy.{name}: {warning}")
    with synth.resource("aws_iam_policy", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_iam_policy", name, attrs, IAM_POLICY_OUTPUTS)


@register_resource("aws_iam_role_policy_attachment", IamRolePolicyAttachmentAttributes, category="iam")
def aws_iam_role_policy_attachment(synth: TerraformSynthesizer, name: str,
                                   attributes: Optional[Dict[str, Any]] = None, /,
                                   **kwargs: Any) -> ResourceReference:
    """Attach a managed policy to a role."""
    attrs = validate_attributes(IamRolePolicyAttachmentAttributes, "aws_iam_role_policy_attachment", name,
                                merge_attributes(attributes, kwargs))
    with synth.resource("aws_iam_role_policy_attachment", name) as r:
        write_attributes(r, attrs)
    return ResourceReference.build("aws_iam_role_policy_attachment", name, attrs, ["id"])
