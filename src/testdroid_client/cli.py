"""Command-line entry point: list devices and projects, start test runs."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from collections.abc import Sequence

from testdroid_client.client import TestdroidClient
from testdroid_client.config import Settings, get_settings
from testdroid_client.exceptions import TestdroidError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="testdroid", description="Testdroid cloud API client")
    parser.add_argument("--url", help="cloud URL (default: $TESTDROID_URL)")
    parser.add_argument("--username", help="account e-mail (default: $TESTDROID_USERNAME)")
    parser.add_argument("--password", help="account password (default: $TESTDROID_PASSWORD)")
    parser.add_argument("-v", "--verbose", action="store_true", help="log HTTP traffic")

    commands = parser.add_subparsers(dest="command", required=True)
    devices = commands.add_parser("devices", help="list devices")
    devices.add_argument("--name", help="only devices with this exact display name")
    commands.add_parser("projects", help="list projects")
    run = commands.add_parser("run", help="start a test run of a project")
    run.add_argument("project", help="exact project name")
    return parser


def _client(args: argparse.Namespace, settings: Settings) -> TestdroidClient:
    overrides = {key: getattr(args, key) for key in ("url", "username", "password") if getattr(args, key)}
    if overrides:
        settings = settings.model_copy(update=overrides)
    if not settings.username or not settings.password:
        raise SystemExit("Must supply url, username, and password")
    return TestdroidClient.from_settings(settings)


def _emit(obj: object) -> None:
    print(json.dumps(obj, default=str))


async def run_command(args: argparse.Namespace, client: TestdroidClient) -> int:
    if args.command == "devices":
        if args.name:
            devices = await client.get_devices_by_name(args.name)
        else:
            devices = await client.get_devices()
        for device in devices:
            _emit(device.model_dump(by_alias=True))
        return 0

    if args.command == "projects":
        for project in await client.get_projects():
            _emit(project.record.model_dump(by_alias=True))
        return 0

    project = await client.get_project(args.project)
    if project is None:
        logger.error("no project named %r", args.project)
        return 1
    test_run = await client.create_test_run(project)
    _emit(test_run.model_dump(by_alias=True))
    return 0


def main(argv: Sequence[str] | None = None) -> None:
    """Entry point for the ``testdroid`` console script."""
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    client = _client(args, get_settings())

    try:
        code = asyncio.run(run_command(args, client))
    except TestdroidError as exc:
        logger.error("%s", exc)
        code = 1
    sys.exit(code)


if __name__ == "__main__":
    main()
