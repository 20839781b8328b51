"""
buildgate config package public API.

Purpose
- Export ``buildgate.toml`` loading/validation entrypoints, immutable build settings,
  and typed module property access.

Functional requirements
- Support loading from ``buildgate.toml`` + ``BUILDGATE_`` env overrides.
- Fail fast with clear structured validation/load errors.
"""

from buildgate.config.loader import (
    DEFAULT_CONFIG_FILE,
    ENV_PREFIX,
    ConfigLoadError,
    dump_effective_config,
    load_config,
    normalize_paths,
)
from buildgate.config.properties import (
    get_boolean,
    get_boolean_optional,
    get_int,
    get_optional,
    get_string,
    load_properties,
    merged_properties,
    parse_properties,
)
from buildgate.config.schema import (
    DEFAULT_CONFIG,
    PATH_FIELDS,
    ConfigValidationError,
    ConfigValidationIssue,
    ConfigValidationResult,
    assert_valid_config,
    default_config,
    merge_config,
    validate_config,
)
from buildgate.config.settings import BuildSettings, KtlintSettings, PropertyKeys

__all__ = [
    "BuildSettings",
    "ConfigLoadError",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DEFAULT_CONFIG",
    "DEFAULT_CONFIG_FILE",
    "ENV_PREFIX",
    "KtlintSettings",
    "PATH_FIELDS",
    "PropertyKeys",
    "assert_valid_config",
    "default_config",
    "dump_effective_config",
    "get_boolean",
    "get_boolean_optional",
    "get_int",
    "get_optional",
    "get_string",
    "load_config",
    "load_properties",
    "merge_config",
    "merged_properties",
    "normalize_paths",
    "parse_properties",
    "validate_config",
]
