"""
Input checks and secret redaction for the tool surface.

The core services trust the paths they are given. Tool handlers run
``validate_tool_parameters`` first and refuse the call when it fails.
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

if TYPE_CHECKING:
    from .config.schema import SecurityConfig

REDACTED = "[REDACTED]"

_SECRET_PATTERNS = [
    (re.compile(r"(Authorization\s*:\s*Bearer\s+)[^\s]+", re.IGNORECASE), r"\1" + REDACTED),
    (re.compile(r"(x-api-key\s*[:=])\s*[^\s]+", re.IGNORECASE), r"\1 " + REDACTED),
    (re.compile(r"(api_?key\s*[:=])\s*[^\s]+", re.IGNORECASE), r"\1 " + REDACTED),
    (re.compile(r"(token\s*[:=])\s*[^\s]+", re.IGNORECASE), r"\1 " + REDACTED),
    (re.compile(r"(secret\s*[:=])\s*[^\s]+", re.IGNORECASE), r"\1 " + REDACTED),
    (re.compile(r"(password\s*[:=])\s*[^\s]+", re.IGNORECASE), r"\1 " + REDACTED),
]

_ENV_VAR_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_DANGEROUS_VALUE_PATTERNS = [
    re.compile(r"[;&|`$()]"),
    re.compile(r"\$\{.*\}"),
    re.compile(r"\$\(.*\)"),
    re.compile(r"`.*`"),
]

_UNSAFE_INPUT_CHARS = re.compile(r"[;&|`$(){}\[\]<>\\]")


@dataclass
class SecurityCheck:
    """Outcome of a parameter check."""
    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def mask_secrets(text: str, security: Optional["SecurityConfig"] = None) -> str:
    """Redact credential-looking values from text.

    Args:
        text: Text that may contain secrets (stderr, error messages, log lines)
        security: Security settings; masking is skipped when disabled there

    Returns:
        Text with secret values replaced by [REDACTED]
    """
    if not text:
        return text
    if security is not None and not security.mask_secrets:
        return text

    masked = text
    for pattern, repl in _SECRET_PATTERNS:
        masked = pattern.sub(repl, masked)

    if security is not None:
        for extra in security.secret_patterns:
            masked = re.sub(extra, REDACTED, masked)
    return masked


def validate_path(target: str, security: Optional["SecurityConfig"] = None) -> Tuple[bool, Optional[str]]:
    """Check that a path lies inside one of the allowed directories.

    An empty allow-list permits every path.

    Returns:
        Tuple of (valid, error message)
    """
    allowed = security.allowed_paths if security is not None else []
    if not allowed:
        return True, None

    absolute = Path(target).resolve()
    if not absolute.exists():
        return False, f"Path does not exist: {target}"

    for allowed_path in allowed:
        root = Path(allowed_path).resolve()
        if absolute == root or root in absolute.parents:
            return True, None

    return False, (
        f"Path is not within allowed directories: {target}. "
        f"Allowed paths: {', '.join(allowed)}"
    )


def sanitize_input(value: str) -> str:
    """Strip shell metacharacters from a string."""
    return _UNSAFE_INPUT_CHARS.sub("", value)


def validate_env_var_name(name: str) -> bool:
    return bool(_ENV_VAR_NAME.match(name))


def validate_env_var_value(value: str) -> bool:
    return not any(pattern.search(value) for pattern in _DANGEROUS_VALUE_PATTERNS)


def sanitize_env_variables(env_vars: Dict[str, str]) -> Tuple[Dict[str, str], List[str]]:
    """Drop variables with unsafe names or values.

    Returns:
        Tuple of (sanitized variables, warnings for each dropped entry)
    """
    sanitized: Dict[str, str] = {}
    warnings: List[str] = []

    for key, value in env_vars.items():
        if not validate_env_var_name(key):
            warnings.append(f"Invalid environment variable name: {key}")
            continue
        if not validate_env_var_value(str(value)):
            warnings.append(f"Potentially unsafe environment variable value for: {key}")
            continue
        sanitized[key] = str(value)

    return sanitized, warnings


def validate_request_name(name: str) -> Tuple[bool, Optional[str]]:
    if ".." in name or "\\" in name or name.startswith("/"):
        return False, "Request name contains invalid characters (path traversal attempt)"
    if "\0" in name:
        return False, "Request name contains null bytes"
    return True, None


def validate_folder_path(folder_path: str) -> Tuple[bool, Optional[str]]:
    if ".." in folder_path:
        return False, "Folder path contains path traversal attempts (..)"
    if os.path.isabs(folder_path):
        return False, "Folder path must be relative to collection root"
    return True, None


def validate_tool_parameters(
    security: Optional["SecurityConfig"] = None,
    collection_path: Optional[str] = None,
    request_name: Optional[str] = None,
    folder_path: Optional[str] = None,
    env_variables: Optional[Dict[str, str]] = None,
) -> SecurityCheck:
    """Run every applicable check over a tool call's parameters.

    Path, request name and folder problems are errors. Unsafe environment
    variables are only warnings; they are dropped before the run.
    """
    errors: List[str] = []
    warnings: List[str] = []

    if collection_path:
        ok, error = validate_path(collection_path, security)
        if not ok:
            errors.append(error or "Invalid collection path")

    if request_name:
        ok, error = validate_request_name(request_name)
        if not ok:
            errors.append(error or "Invalid request name")

    if folder_path:
        ok, error = validate_folder_path(folder_path)
        if not ok:
            errors.append(error or "Invalid folder path")

    if env_variables:
        _, env_warnings = sanitize_env_variables(env_variables)
        warnings.extend(env_warnings)

    return SecurityCheck(valid=not errors, errors=errors, warnings=warnings)
