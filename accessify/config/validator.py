"""
Configuration Validator for Accessify.

This module provides advisory validation of a configuration tree:
- Required top-level fields
- Supported language and text direction
- Text size range bounds
- Schema conformance using the Pydantic models

Validation collects messages instead of raising. Nothing in the runtime
runs it automatically; callers decide what an invalid result means.
"""

import logging
from numbers import Real
from typing import Any, Dict, List, Mapping

from pydantic import ValidationError as PydanticValidationError

from ..core.interfaces import ValidationResult
from .schema import (
    AccessifyConfiguration, REQUIRED_FIELDS, SUPPORTED_DIRECTIONS, SUPPORTED_LANGUAGES
)

logger = logging.getLogger(__name__)

TEXT_SIZE_MIN = 0.5
TEXT_SIZE_MAX = 3.0


class ValidationRule:
    """Base class for validation rules."""

    def __init__(self, name: str, description: str):
        self.name = name
        self.description = description

    def validate(self, config: Mapping[str, Any]) -> List[str]:
        """
        Validate a configuration tree against this rule.

        Args:
            config: Configuration tree to validate

        Returns:
            List of validation errors (empty if valid)
        """
        raise NotImplementedError


class RequiredFieldsRule(ValidationRule):
    """Validates that the required top-level fields are present."""

    def __init__(self):
        super().__init__(
            "required_fields",
            "Validates that version, language and direction are set"
        )

    def validate(self, config: Mapping[str, Any]) -> List[str]:
        return [
            f"Missing required configuration: {field}"
            for field in REQUIRED_FIELDS
            if not config.get(field)
        ]


class LanguageRule(ValidationRule):
    """Validates the interface language against the supported list."""

    def __init__(self):
        super().__init__(
            "language",
            f"Validates language is one of {', '.join(SUPPORTED_LANGUAGES)}"
        )

    def validate(self, config: Mapping[str, Any]) -> List[str]:
        language = config.get('language')
        if language not in SUPPORTED_LANGUAGES:
            return [f"Unsupported language: {language}"]
        return []


class DirectionRule(ValidationRule):
    """Validates the text direction."""

    def __init__(self):
        super().__init__("direction", "Validates direction is ltr or rtl")

    def validate(self, config: Mapping[str, Any]) -> List[str]:
        direction = config.get('direction')
        if direction not in SUPPORTED_DIRECTIONS:
            return [f"Invalid direction: {direction}"]
        return []


class TextSizeRangeRule(ValidationRule):
    """Validates the text size range stays inside the usable bounds."""

    def __init__(self):
        super().__init__(
            "text_size_range",
            f"Validates text size min >= {TEXT_SIZE_MIN} and max <= {TEXT_SIZE_MAX}"
        )

    def validate(self, config: Mapping[str, Any]) -> List[str]:
        visual = config.get('visual')
        text_size = visual.get('textSize') if isinstance(visual, Mapping) else None
        if not isinstance(text_size, Mapping):
            return ["Missing text size configuration: visual.textSize"]

        low = text_size.get('min')
        high = text_size.get('max')
        if not _is_number(low) or not _is_number(high):
            return ["Text size range must be numeric"]

        if low < TEXT_SIZE_MIN or high > TEXT_SIZE_MAX:
            return [f"Text size range must be between {TEXT_SIZE_MIN} and {TEXT_SIZE_MAX}"]
        return []


class SchemaValidationRule(ValidationRule):
    """Validates value types against the Pydantic configuration schema."""

    def __init__(self):
        super().__init__(
            "schema",
            "Validates configuration values against the schema types"
        )

    def validate(self, config: Mapping[str, Any]) -> List[str]:
        try:
            AccessifyConfiguration.model_validate(dict(config))
        except PydanticValidationError as e:
            return [
                f"Invalid value at {'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
                for error in e.errors()
            ]
        return []


class ConfigurationValidator:
    """Runs a list of validation rules over a configuration tree."""

    def __init__(self):
        self._rules: List[ValidationRule] = [
            RequiredFieldsRule(),
            LanguageRule(),
            DirectionRule(),
            TextSizeRangeRule(),
            SchemaValidationRule(),
        ]

    def add_rule(self, rule: ValidationRule) -> None:
        """Add a custom validation rule."""
        self._rules.append(rule)

    def get_rules(self) -> List[ValidationRule]:
        return list(self._rules)

    def validate(self, config: Mapping[str, Any]) -> ValidationResult:
        """
        Validate a configuration tree.

        A rule that raises is reported as an error instead of propagating.
        """
        errors: List[str] = []

        for rule in self._rules:
            try:
                errors.extend(rule.validate(config))
            except Exception as e:
                logger.error(f"Validation rule {rule.name} failed: {e}")
                errors.append(f"Validation rule {rule.name} failed: {e}")

        if errors:
            logger.debug(f"Configuration validation found {len(errors)} problem(s)")

        return ValidationResult.from_errors(errors)

    def get_rule_summary(self) -> Dict[str, str]:
        return {rule.name: rule.description for rule in self._rules}


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)
