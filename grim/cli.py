"""Command-line entry point for queue setup, manual builds, and config checks."""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path

from grim.config.resolver import resolve_for_repo, resolve_global
from grim.config.settings import RuntimeSettings
from grim.errors import GrimError
from grim.instance import Instance
from grim.logging import configure_logging, get_logger, log_exception, log_warning

logger = get_logger(__name__)


def _parser(settings: RuntimeSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="grim", description=__doc__)
    parser.add_argument(
        "--config-root",
        type=Path,
        default=settings.config_root,
        help="Directory holding config.json (default: %(default)s)",
    )
    parser.add_argument(
        "--log-level",
        default=settings.log_level,
        help="Log level (default: %(default)s)",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("prepare-queue", help="Validate and declare the hook queue")

    build = commands.add_parser("build", help="Build a ref and record the result")
    build.add_argument("owner")
    build.add_argument("repo")
    build.add_argument("ref")

    check = commands.add_parser("check-config", help="Resolve and print configuration")
    check.add_argument("--owner", default=None)
    check.add_argument("--repo", default=None)
    return parser


def _prepare_queue(instance: Instance) -> int:
    from grim.queue.client import DramatiqQueueClient

    instance.queue = DramatiqQueueClient(str(instance.config_root))
    identity = instance.prepare_queue()
    print(f"queue {identity.queue_name} ready (server id {identity.server_id})")
    return 0


def _build(instance: Instance, owner: str, repo: str, ref: str) -> int:
    result = asyncio.run(instance.build_ref(owner, repo, ref))
    print(f"{owner}/{repo}@{ref} exited with {result.exit_code}")
    return 0 if result.succeeded else 1


def _check_config(config_root: Path, owner: str | None, repo: str | None) -> int:
    if (owner is None) != (repo is None):
        print("--owner and --repo must be given together")
        return 2
    if owner is not None and repo is not None:
        config = resolve_for_repo(config_root, owner, repo)
    else:
        config = resolve_global(config_root)
    print(config)
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the ``grim`` command.

    Parameters
    ----------
    argv : list[str] | None, optional
        Command-line arguments. ``None`` defaults to ``sys.argv``.

    Returns
    -------
    int
        Exit code: 0 on success, 1 when the command fails or the build
        exits non-zero, 2 on invalid option combinations.

    """
    settings = RuntimeSettings.from_env()
    args = _parser(settings).parse_args(argv)

    normalized_level, invalid_level = configure_logging(args.log_level)
    if invalid_level:
        log_warning(
            logger,
            "Invalid log level %r, falling back to %s",
            args.log_level,
            normalized_level,
        )

    instance = Instance(config_root=args.config_root)
    try:
        if args.command == "prepare-queue":
            return _prepare_queue(instance)
        if args.command == "build":
            return _build(instance, args.owner, args.repo, args.ref)
        return _check_config(args.config_root, args.owner, args.repo)
    except GrimError as exc:
        log_exception(logger, f"grim {args.command} failed", exc)
        print(f"grim {args.command} failed: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
