"""jorup command line interface.

Usage:
    jorup install 0.8.0 --default
    jorup run testnet --rest-port 8443 --daemon -- --log-level debug
    jorup run testnet --config node.yaml
    jorup status testnet
    jorup shutdown testnet
"""

import argparse
import logging
import sys
from pathlib import Path

from .audit import AuditLogger
from .channel import Channel
from .config import JorupConfig
from .errors import JorupError, NodeConfigError
from .progress import DownloadProgress
from .release import ResolvedRelease
from .remote import RemoteReleaseResolver
from .runner import Supervisor
from .store import ReleaseStore
from .update import install_release
from .version import VersionRequirement, display, parse, parse_requirement


def _build_config(args: argparse.Namespace) -> JorupConfig:
    overrides = {"offline": args.offline}
    if args.home is not None:
        overrides["home"] = args.home
    if args.jorfile is not None:
        overrides["jorfile"] = args.jorfile
    config = JorupConfig(**overrides)
    config.init()
    return config


def _install(
    config: JorupConfig,
    requirement: VersionRequirement,
    audit: AuditLogger,
    make_default: bool = False,
) -> ResolvedRelease:
    store = ReleaseStore(config, audit=audit)
    resolver = RemoteReleaseResolver.from_config(config)
    with DownloadProgress(f"Downloading jormungandr {requirement}") as progress:
        return install_release(
            config,
            requirement,
            store,
            resolver,
            progress=progress,
            make_default=make_default,
            audit=audit,
        )


def cmd_install(args: argparse.Namespace, config: JorupConfig, audit: AuditLogger) -> int:
    requirement = parse_requirement(args.version)
    release = _install(config, requirement, audit, make_default=args.default)
    print(f"jormungandr {display(release.version)} installed in {release.directory}")
    if args.default:
        print(f"default binaries updated in {config.bin_dir}")
    return 0


def cmd_list(args: argparse.Namespace, config: JorupConfig, audit: AuditLogger) -> int:
    versions = ReleaseStore(config).list_installed()
    if not versions:
        print("No release installed")
    for version in versions:
        print(display(version))
    return 0


def cmd_remove(args: argparse.Namespace, config: JorupConfig, audit: AuditLogger) -> int:
    version = parse(args.version)
    ReleaseStore(config, audit=audit).remove(version)
    print(f"jormungandr {display(version)} removed")
    return 0


def cmd_run(args: argparse.Namespace, config: JorupConfig, audit: AuditLogger) -> int:
    channel = Channel.load(config, args.channel)
    channel.prepare()

    if args.bin is not None:
        node_binary = args.bin / config.node_binary_name
        companion_binary = args.bin / config.companion_binary_name
    else:
        requirement = (
            parse_requirement(args.version) if args.version else channel.requirement
        )
        release = _install(config, requirement, audit)
        node_binary = release.node_binary
        companion_binary = release.companion_binary

    extra_params = list(args.extra)
    default_config = not args.no_default_config
    if args.node_config is not None:
        # The node runs from the channel directory
        try:
            node_config = args.node_config.resolve(strict=True)
        except OSError as exc:
            raise NodeConfigError(args.node_config) from exc
        extra_params += ["--config", str(node_config)]
        default_config = False

    supervisor = Supervisor.load(channel, audit=audit)
    start_args = dict(
        rest_port=args.rest_port,
        extra_params=extra_params,
        default_config=default_config,
    )

    if args.daemon:
        session = supervisor.spawn(node_binary, companion_binary, **start_args)
        print(f"Node started for channel {channel.name}. PID: {session.pid}")
        print(f"Logs: {channel.log_file}")
        return 0

    returncode = supervisor.run(node_binary, companion_binary, **start_args)
    print(f"exit status: {returncode}")
    return returncode


def cmd_shutdown(args: argparse.Namespace, config: JorupConfig, audit: AuditLogger) -> int:
    supervisor = Supervisor.load(Channel.load(config, args.channel), audit=audit)
    supervisor.shutdown()
    print(f"Node of channel {args.channel} shut down")
    return 0


def cmd_info(args: argparse.Namespace, config: JorupConfig, audit: AuditLogger) -> int:
    supervisor = Supervisor.load(Channel.load(config, args.channel), audit=audit)
    print(supervisor.info(), end="")
    return 0


def cmd_status(args: argparse.Namespace, config: JorupConfig, audit: AuditLogger) -> int:
    supervisor = Supervisor.load(Channel.load(config, args.channel), audit=audit)
    print(supervisor.status(), end="")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jorup", description="Install and run jormungandr releases"
    )
    parser.add_argument(
        "--home",
        type=Path,
        default=None,
        help="jorup home directory (default: $JORUP_HOME or ~/.jorup)",
    )
    parser.add_argument(
        "--jorfile",
        type=Path,
        default=None,
        help="Path to the jorfile (default: <home>/jorfile.json)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Only use releases already installed",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    install = subparsers.add_parser("install", help="Install a release")
    install.add_argument("version", help="Version requirement, 'latest' or 'nightly'")
    install.add_argument(
        "--default",
        action="store_true",
        help="Make the release the default binaries",
    )
    install.set_defaults(handler=cmd_install)

    list_ = subparsers.add_parser("list", help="List installed releases")
    list_.set_defaults(handler=cmd_list)

    remove = subparsers.add_parser("remove", help="Remove an installed release")
    remove.add_argument("version", help="Exact installed version")
    remove.set_defaults(handler=cmd_remove)

    run = subparsers.add_parser("run", help="Run the node of a channel")
    run.add_argument("channel", help="Channel name from the jorfile")
    run.add_argument(
        "--version",
        default=None,
        help="Version requirement overriding the channel's",
    )
    run.add_argument(
        "--bin",
        type=Path,
        default=None,
        help="Directory holding the binaries to use instead of a release",
    )
    run.add_argument(
        "--rest-port",
        type=int,
        default=None,
        help="Port of the node REST interface, required for status/info/shutdown",
    )
    run.add_argument(
        "--daemon",
        action="store_true",
        help="Run the node in the background",
    )
    run.add_argument(
        "--no-default-config",
        action="store_true",
        help="Do not pass the channel's storage, genesis hash and peers",
    )
    run.add_argument(
        "--config",
        dest="node_config",
        type=Path,
        default=None,
        help="Node configuration file; implies --no-default-config",
    )
    run.set_defaults(handler=cmd_run)

    for name, handler, description in (
        ("shutdown", cmd_shutdown, "Shut down the node of a channel"),
        ("info", cmd_info, "Show the settings of a running node"),
        ("status", cmd_status, "Show the statistics of a running node"),
    ):
        sub = subparsers.add_parser(name, help=description)
        sub.add_argument("channel", help="Channel name from the jorfile")
        sub.set_defaults(handler=handler)

    return parser


def _report(exc: BaseException) -> None:
    print(f"error: {exc}", file=sys.stderr)
    cause = exc.__cause__
    while cause is not None:
        print(f"  caused by: {cause}", file=sys.stderr)
        cause = cause.__cause__


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    Arguments after a bare ``--`` are passed verbatim to the node by ``run``.
    """
    argv = list(sys.argv[1:] if argv is None else argv)
    extra: list[str] = []
    if "--" in argv:
        split = argv.index("--")
        argv, extra = argv[:split], argv[split + 1 :]
    args = build_parser().parse_args(argv)
    args.extra = extra

    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    logging.captureWarnings(True)

    try:
        config = _build_config(args)
        audit = AuditLogger(config.audit_log_path)
        returncode = args.handler(args, config, audit)
    except JorupError as exc:
        _report(exc)
        sys.exit(1)

    if returncode:
        sys.exit(returncode)


if __name__ == "__main__":
    main()
