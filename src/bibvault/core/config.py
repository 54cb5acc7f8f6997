"""Configuration models used by the document synchronizer.

FieldRule

`field` (`str`)
: Lower-cased name of the bibliography field the rule applies to.

`pattern` (`str`)
: Text to replace. Interpreted literally unless `regex` is enabled.

`replacement` (`str`)
: Replacement text. Defaults to an underscore, which keeps values usable in
  link targets and file names.

`regex` (`bool`)
: Treat `pattern` as a regular expression.

VaultConfig

`references_folder` (`str`)
: Store-relative folder receiving one document per reference.

`authors_folder` (`str`)
: Store-relative folder receiving one document per author.

`references_heading` (`str`)
: Section marker introducing the list of reference links in author
  documents. Existing documents are patched below this marker.

`document_suffix` (`str`)
: File suffix appended to every generated document name.

`field_rules` (`list[FieldRule]`)
: Sanitization rules applied to normalized field values. Colons in
  `booktitle` are replaced by default.
"""

from __future__ import annotations

from pathlib import Path
import re

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
import yaml

from .exceptions import ConfigError


DEFAULT_CONFIG_FILENAME = ".bibvault.yml"


class FieldRule(BaseModel):
    """Replacement applied to a single normalized field."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    field: str
    pattern: str = Field(min_length=1)
    replacement: str = "_"
    regex: bool = False

    @field_validator("field")
    @classmethod
    def _lower_field(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("field name must not be empty")
        return value

    @model_validator(mode="after")
    def _compile_pattern(self) -> FieldRule:
        if self.regex:
            try:
                re.compile(self.pattern)
            except re.error as exc:
                raise ValueError(f"invalid pattern: {exc}") from exc
        return self

    def apply(self, value: str) -> str:
        """Return `value` with the rule applied."""
        if self.regex:
            return re.sub(self.pattern, self.replacement, value)
        return value.replace(self.pattern, self.replacement)


def _default_field_rules() -> list[FieldRule]:
    return [FieldRule(field="booktitle", pattern=":", replacement="_")]


class VaultConfig(BaseModel):
    """Layout of the generated documents and field sanitization rules."""

    model_config = ConfigDict(extra="forbid")

    references_folder: str = "Sources/References"
    authors_folder: str = "Sources/Authors"
    references_heading: str = "### References"
    document_suffix: str = ".md"
    field_rules: list[FieldRule] = Field(default_factory=_default_field_rules)

    @field_validator("references_folder", "authors_folder")
    @classmethod
    def _normalise_folder(cls, value: str) -> str:
        return value.replace("\\", "/").strip().strip("/")

    @field_validator("references_heading")
    @classmethod
    def _require_heading(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("references heading must not be empty")
        return value

    def rules_for(self, field: str) -> list[FieldRule]:
        """Return the rules registered for `field`, in declaration order."""
        name = field.lower()
        return [rule for rule in self.field_rules if rule.field == name]


def load_config(path: Path | str | None = None) -> VaultConfig:
    """Load a YAML configuration file, falling back to defaults when absent."""
    if path is None:
        return VaultConfig()

    config_path = Path(path)
    try:
        raw = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Unable to read configuration '{config_path}': {exc}") from exc

    try:
        payload = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in '{config_path}': {exc}") from exc

    if not isinstance(payload, dict):
        raise ConfigError(f"Configuration '{config_path}' must contain a mapping.")

    try:
        return VaultConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in '{config_path}': {exc}") from exc


def discover_config(root: Path | str) -> VaultConfig:
    """Load `.bibvault.yml` from a vault root when it exists."""
    candidate = Path(root) / DEFAULT_CONFIG_FILENAME
    if candidate.is_file():
        return load_config(candidate)
    return VaultConfig()


__all__ = [
    "DEFAULT_CONFIG_FILENAME",
    "FieldRule",
    "VaultConfig",
    "discover_config",
    "load_config",
]
