"""Configuration documents and the resolved per-build configuration."""

from __future__ import annotations

import dataclasses as dc
from pathlib import Path

import msgspec

DEFAULT_QUEUE_NAME = "grim-queue"
DEFAULT_RESULT_ROOT = Path("/var/log/grim")
DEFAULT_WORKSPACE_ROOT = Path("/var/tmp/grim")  # noqa: S108 - build scratch space
DEFAULT_TIMEOUT_S = 300
DEFAULT_BUILD_SCRIPT = ".grim_build.sh"

# Service-imposed identifier limits.
MAX_QUEUE_NAME_LENGTH = 80
MAX_SERVER_ID_LENGTH = 15


class ConfigDocument(msgspec.Struct, kw_only=True, omit_defaults=True):
    """One ``config.json`` document, global or repository-scoped.

    Every field is optional. ``UNSET`` marks a key that was absent from the
    file, which is what lets a repository overlay replace only the keys it
    actually names. A JSON ``null`` is treated the same as an absent key.
    """

    queue_name: str | None | msgspec.UnsetType = msgspec.field(
        default=msgspec.UNSET, name="GrimQueueName"
    )
    server_id: str | None | msgspec.UnsetType = msgspec.field(
        default=msgspec.UNSET, name="GrimServerID"
    )
    aws_region: str | None | msgspec.UnsetType = msgspec.field(
        default=msgspec.UNSET, name="AWSRegion"
    )
    aws_key: str | None | msgspec.UnsetType = msgspec.field(
        default=msgspec.UNSET, name="AWSKey"
    )
    aws_secret: str | None | msgspec.UnsetType = msgspec.field(
        default=msgspec.UNSET, name="AWSSecret"
    )
    result_root: str | None | msgspec.UnsetType = msgspec.field(
        default=msgspec.UNSET, name="ResultRoot"
    )
    workspace_root: str | None | msgspec.UnsetType = msgspec.field(
        default=msgspec.UNSET, name="WorkspaceRoot"
    )
    timeout: int | None | msgspec.UnsetType = msgspec.field(
        default=msgspec.UNSET, name="Timeout"
    )
    path_to_clone_in: str | None | msgspec.UnsetType = msgspec.field(
        default=msgspec.UNSET, name="PathToCloneIn"
    )
    github_token: str | None | msgspec.UnsetType = msgspec.field(
        default=msgspec.UNSET, name="GitHubToken"
    )
    build_script: str | None | msgspec.UnsetType = msgspec.field(
        default=msgspec.UNSET, name="BuildScript"
    )


@dc.dataclass(frozen=True, slots=True)
class EffectiveConfig:
    """Fully merged and defaulted configuration for a single build.

    Instances are built fresh for every build and never mutated, so
    concurrent builds do not share configuration state.

    Attributes
    ----------
    queue_name
        Logical name of the remote queue hooks arrive on.
    server_id
        Short identity of this dispatcher; used as the commit status context.
    aws_region, aws_key, aws_secret
        Remote queue service region and credentials.
    result_root
        Root of the durable result tree.
    workspace_root
        Root under which build workspaces are created.
    timeout
        Build deadline in seconds; ``0`` means :data:`DEFAULT_TIMEOUT_S`.
    path_to_clone_in
        Path inside the workspace to clone into; empty means ``owner/repo``.
    github_token
        Token used for commit status updates; empty disables them.
    build_script
        Script, relative to the clone, that performs the build.

    """

    queue_name: str = DEFAULT_QUEUE_NAME
    server_id: str = DEFAULT_QUEUE_NAME[:MAX_SERVER_ID_LENGTH]
    aws_region: str = ""
    aws_key: str = dc.field(default="", repr=False)
    aws_secret: str = dc.field(default="", repr=False)
    result_root: Path = DEFAULT_RESULT_ROOT
    workspace_root: Path = DEFAULT_WORKSPACE_ROOT
    timeout: int = DEFAULT_TIMEOUT_S
    path_to_clone_in: str = ""
    github_token: str = dc.field(default="", repr=False)
    build_script: str = DEFAULT_BUILD_SCRIPT

    @property
    def timeout_s(self) -> int:
        """Return the deadline in seconds, substituting the default for zero."""
        return self.timeout if self.timeout > 0 else DEFAULT_TIMEOUT_S

    def clone_path(self, owner: str, repo: str) -> str:
        """Return the clone location relative to a build workspace."""
        return self.path_to_clone_in or f"{owner}/{repo}"
