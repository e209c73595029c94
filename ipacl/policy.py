"""Policy loading and validation for ipacl."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Any, Literal, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .exceptions import BadPolicy

if TYPE_CHECKING:  # pragma: no cover
    from .cache import Evaluator
    from .registry import Registry


class RuleRecord(BaseModel):
    """Declarative rule: ``{resource, allow?, deny?}``, each a string or a list."""

    model_config = ConfigDict(extra="ignore")

    resource: list[str]
    allow: list[str] = Field(default_factory=list)
    deny: list[str] = Field(default_factory=list)

    @field_validator("resource", "allow", "deny", mode="before")
    @classmethod
    def as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value

    @model_validator(mode="after")
    def check_rule(self) -> "RuleRecord":
        if not self.resource:
            raise ValueError("Rule has to have a resource")
        if not self.allow and not self.deny:
            raise ValueError('Rule has to have at least one of "allow" or "deny" lists')
        return self


class LoggingSettings(BaseModel):
    level: str = "INFO"
    output: Literal["stderr", "file"] = "stderr"
    file_path: str = "ipacl.log"
    rotate_bytes: int = 10_485_760


class Policy(BaseModel):
    version: int = 1
    respond_with: int = 403
    trust_forwarded: bool = True
    rules: list[RuleRecord] = Field(default_factory=list)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @field_validator("respond_with")
    @classmethod
    def validate_status(cls, value: int) -> int:
        if not 400 <= value <= 599:
            raise ValueError("respond_with must be an HTTP error status (400-599)")
        return value

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Policy":
        try:
            return cls.model_validate(data)
        except ValidationError as exc:
            raise BadPolicy(message=str(exc)) from exc

    def registry(self) -> "Registry":
        from .registry import Registry

        return Registry(self.rules)

    def build(self) -> "Evaluator":
        return self.registry().build()


def load_policy(path: Union[str, Path]) -> Policy:
    """Load a policy from a YAML file."""

    try:
        raw = Path(path).read_text(encoding="utf-8")
    except OSError as exc:
        raise BadPolicy(message=f"Failed to read policy: {exc}") from exc
    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        raise BadPolicy(message=f"Failed to parse policy YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise BadPolicy(message="Policy document has to be a mapping")
    return Policy.from_dict(data)
