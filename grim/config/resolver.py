"""Resolve effective build configuration from the configuration root.

The configuration root holds one global ``config.json`` and, optionally, a
``<owner>/<repo>/config.json`` overlay per repository::

    {config_root}/config.json
    {config_root}/{owner}/{repo}/config.json

The overlay replaces only the keys it names. Missing keys fall back to the
global document and then to the module defaults.

Usage
-----
>>> from grim.config import resolve_for_repo
>>> config = resolve_for_repo(Path("/etc/grim"), "acme", "widget")
>>> config.timeout_s
300

"""

from __future__ import annotations

import typing as typ
from pathlib import Path

import msgspec

from grim.errors import ConfigError
from grim.logging import get_logger, log_warning

from .models import (
    DEFAULT_BUILD_SCRIPT,
    DEFAULT_QUEUE_NAME,
    DEFAULT_RESULT_ROOT,
    DEFAULT_TIMEOUT_S,
    DEFAULT_WORKSPACE_ROOT,
    MAX_QUEUE_NAME_LENGTH,
    MAX_SERVER_ID_LENGTH,
    ConfigDocument,
    EffectiveConfig,
)

logger = get_logger(__name__)

CONFIG_FILENAME = "config.json"

_REQUIRED_FIELDS = (
    ("aws_region", "AWSRegion"),
    ("aws_key", "AWSKey"),
    ("aws_secret", "AWSSecret"),
)


def build_truncated_message(field: str) -> str:
    """Return the fixed notice logged when ``field`` is shortened."""
    return f"{field} was truncated"


def truncate_identifier(field: str, value: str, limit: int) -> str:
    """Shorten ``value`` to ``limit`` characters, logging when it changes.

    Parameters
    ----------
    field
        Configuration key the value came from; named in the warning.
    value
        Identifier to check.
    limit
        Maximum length accepted by the remote service.

    Returns
    -------
    str
        ``value`` unchanged, or its first ``limit`` characters.

    """
    if len(value) <= limit:
        return value

    log_warning(
        logger,
        "%s (length %d exceeds maximum %d; using %r)",
        build_truncated_message(field),
        len(value),
        limit,
        value[:limit],
    )
    return value[:limit]


def load_document(path: Path) -> ConfigDocument:
    """Read and decode a single configuration document.

    Raises
    ------
    ConfigError
        If the file cannot be read or does not decode as a configuration
        object.

    """
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise ConfigError.unreadable(path, exc) from exc

    try:
        return msgspec.json.decode(raw, type=ConfigDocument)
    except msgspec.DecodeError as exc:
        raise ConfigError.unreadable(path, exc) from exc


def overlay(base: ConfigDocument, override: ConfigDocument) -> ConfigDocument:
    """Return ``base`` with every key set in ``override`` replaced.

    Keys that are absent or ``null`` in ``override`` leave ``base`` untouched.
    """
    changes = {
        field: value
        for field in override.__struct_fields__
        if not _is_absent(value := getattr(override, field))
    }
    return msgspec.structs.replace(base, **changes)


def _is_absent(value: object) -> bool:
    return value is msgspec.UNSET or value is None


def _value[T](value: T | None | msgspec.UnsetType, default: T) -> T:
    return default if _is_absent(value) else typ.cast("T", value)


def _timeout(value: int | None | msgspec.UnsetType) -> int:
    if _is_absent(value) or value == 0:
        return DEFAULT_TIMEOUT_S
    if typ.cast("int", value) < 0:
        raise ConfigError.invalid_field("Timeout", value, "must be non-negative")
    return typ.cast("int", value)


def _validate_required(document: ConfigDocument) -> None:
    for attr, field in _REQUIRED_FIELDS:
        value = getattr(document, attr)
        if _is_absent(value) or not value.strip():
            raise ConfigError.missing_field(field)


def _identifiers(document: ConfigDocument) -> tuple[str, str]:
    queue_name = truncate_identifier(
        "GrimQueueName",
        _value(document.queue_name, DEFAULT_QUEUE_NAME),
        MAX_QUEUE_NAME_LENGTH,
    )
    if not _is_absent(document.server_id) and document.server_id:
        server_id = truncate_identifier(
            "GrimServerID", document.server_id, MAX_SERVER_ID_LENGTH
        )
    else:
        # Derived identities report against the key the operator actually set.
        server_id = truncate_identifier(
            "GrimQueueName", queue_name, MAX_SERVER_ID_LENGTH
        )
    return queue_name, server_id


def build_effective_config(document: ConfigDocument) -> EffectiveConfig:
    """Validate a merged document and apply defaults.

    Raises
    ------
    ConfigError
        If a required queue-service identifier is empty or the timeout is
        negative.

    """
    _validate_required(document)
    timeout = _timeout(document.timeout)
    queue_name, server_id = _identifiers(document)

    return EffectiveConfig(
        queue_name=queue_name,
        server_id=server_id,
        aws_region=_value(document.aws_region, ""),
        aws_key=_value(document.aws_key, ""),
        aws_secret=_value(document.aws_secret, ""),
        result_root=Path(_value(document.result_root, str(DEFAULT_RESULT_ROOT))),
        workspace_root=Path(
            _value(document.workspace_root, str(DEFAULT_WORKSPACE_ROOT))
        ),
        timeout=timeout,
        path_to_clone_in=_value(document.path_to_clone_in, ""),
        github_token=_value(document.github_token, ""),
        build_script=_value(document.build_script, DEFAULT_BUILD_SCRIPT),
    )


def _load_global(config_root: Path) -> ConfigDocument:
    path = Path(config_root) / CONFIG_FILENAME
    if not path.is_file():
        raise ConfigError.missing_global(path)
    return load_document(path)


def resolve_global(config_root: Path | str) -> EffectiveConfig:
    """Resolve configuration from the global document alone."""
    return build_effective_config(_load_global(Path(config_root)))


def resolve_for_repo(config_root: Path | str, owner: str, repo: str) -> EffectiveConfig:
    """Resolve configuration for one repository.

    Parameters
    ----------
    config_root
        Directory holding the global ``config.json``.
    owner
        Repository owner.
    repo
        Repository name.

    Returns
    -------
    EffectiveConfig
        Global settings overlaid with the repository's own document when one
        exists.

    Raises
    ------
    ConfigError
        If the global document is missing or unreadable, the repository
        document is unreadable, or the merged result fails validation.

    """
    root = Path(config_root)
    document = _load_global(root)

    repo_path = root / owner / repo / CONFIG_FILENAME
    if repo_path.is_file():
        document = overlay(document, load_document(repo_path))

    return build_effective_config(document)
