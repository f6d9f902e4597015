"""CLI entrypoints for fbembed commands."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

from .build import (
    BuildArgs,
    BuildManager,
    PackageMetadata,
    PackagePublisher,
    PublishArgs,
    load_metadata,
    save_metadata,
)
from .config import CONFIG_FILE_NAME, BuildConfig, BuildType, load_config
from .errors import ConfigError, HostLocationError, UnsupportedPlatformError
from .logging import configure_logging
from .models import ProductVersion
from .native import AssetPathResolver, default_resolver, probe, runtime_directory, select_strategy


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_config_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        default=".",
        help=f"Path to {CONFIG_FILE_NAME} or the directory holding it (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fbembed",
        description="Resolve and package Firebird embedded native assets.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        help="Only report warnings and errors.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write debug logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build_parser = subparsers.add_parser(
        "build",
        help="Build NuGet packages for the releases listed in the release manifest.",
    )
    _add_verbose_option(build_parser, suppress_default=True)
    _add_config_option(build_parser)
    build_parser.add_argument(
        "--build-type",
        choices=[item.value for item in BuildType],
        default=None,
        help="Override the configured build type.",
    )
    build_parser.add_argument(
        "--templates-only",
        action="store_true",
        help="Render READMEs and targets files only; package metadata is left untouched.",
    )
    build_parser.add_argument(
        "--product",
        action="append",
        dest="products",
        help="Restrict the build to a product version (repeatable, e.g. --product V5).",
    )

    publish_parser = subparsers.add_parser(
        "publish",
        help="Push built packages that have not been published yet to a NuGet feed.",
    )
    _add_verbose_option(publish_parser, suppress_default=True)
    _add_config_option(publish_parser)
    publish_parser.add_argument(
        "--force",
        action="store_true",
        help="Push every package in the output directory, including published ones.",
    )
    publish_parser.add_argument(
        "--source",
        default=None,
        help="Feed URL or local directory (overrides publish.source).",
    )
    publish_parser.add_argument(
        "--api-key",
        default=None,
        help="Feed API key (defaults to the environment variable named by publish.api_key_env).",
    )

    init_parser = subparsers.add_parser(
        "init-metadata",
        help="Create an empty package metadata file.",
    )
    _add_verbose_option(init_parser, suppress_default=True)
    _add_config_option(init_parser)
    init_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite an existing metadata file.",
    )

    history_parser = subparsers.add_parser(
        "history",
        help="List the package releases recorded in the metadata file.",
    )
    _add_verbose_option(history_parser, suppress_default=True)
    _add_config_option(history_parser)

    resolve_parser = subparsers.add_parser(
        "resolve",
        help="Print the native client path for a product version on this machine.",
    )
    _add_verbose_option(resolve_parser, suppress_default=True)
    resolve_parser.add_argument("version", help="Product version, e.g. V5 or 5.")
    resolve_parser.add_argument(
        "--host-dir",
        type=Path,
        default=None,
        help="Resolve beneath this directory instead of the running executable's.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for fbembed commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(
        verbose=bool(args.verbose),
        quiet=bool(args.quiet),
        log_file=args.log_file,
    )

    if args.command == "build":
        config = _load(parser, args.config)
        try:
            products = [ProductVersion.parse(item) for item in args.products or []]
        except ValueError as exc:
            parser.exit(1, f"{exc}\n")
        build_args = BuildArgs(
            build_type=BuildType.parse(args.build_type) if args.build_type else None,
            templates_only=bool(args.templates_only),
            products=products or None,
        )
        with BuildManager(config) as manager:
            result = manager.run(build_args)
        if not result.success:
            parser.exit(1, f"fbembed build failed: {result.message}\nRun with --verbose for more details.\n")
        print("Build completed" + (" (metadata updated)" if result.metadata_saved else ""))
    elif args.command == "publish":
        config = _load(parser, args.config)
        publish_args = PublishArgs(force=bool(args.force), source=args.source, api_key=args.api_key)
        with PackagePublisher(config) as publisher:
            result = publisher.run(publish_args)
        if not result.success:
            parser.exit(1, f"fbembed publish failed: {result.message}\nRun with --verbose for more details.\n")
        print("Publish completed" + (" (metadata updated)" if result.metadata_saved else ""))
    elif args.command == "init-metadata":
        config = _load(parser, args.config)
        path = config.paths.metadata
        if path.exists() and not args.force:
            parser.exit(1, f"{_relativize(path)} already exists; use --force to overwrite.\n")
        if not save_metadata(PackageMetadata(), path):
            parser.exit(1, f"Could not write {_relativize(path)}\n")
        print(f"Package metadata created at {_relativize(path)}")
    elif args.command == "history":
        config = _load(parser, args.config)
        metadata = load_metadata(config.paths.metadata)
        if metadata is None:
            parser.exit(1, f"Could not load package metadata from {_relativize(config.paths.metadata)}\n")
        _print_history(metadata)
    elif args.command == "resolve":
        try:
            version = ProductVersion.parse(args.version)
            path = _resolver(args.host_dir).resolve(version)
        except ValueError as exc:
            parser.exit(1, f"{exc}\n")
        except (UnsupportedPlatformError, HostLocationError) as exc:
            parser.exit(1, f"fbembed resolve failed: {exc}\n")
        if path is None:
            parser.exit(1, f"Firebird {version.long_name} native assets are not installed\n")
        print(path)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _load(parser: argparse.ArgumentParser, location: str) -> BuildConfig:
    try:
        return load_config(Path(location))
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")


def _resolver(host_dir: Path | None) -> AssetPathResolver:
    if host_dir is None:
        return default_resolver()
    host = probe()
    return AssetPathResolver(
        host_dir.expanduser().resolve(),
        select_strategy(host.platform),
        host.architecture,
        runtime_directory=runtime_directory(),
    )


def _print_history(metadata: PackageMetadata) -> None:
    for product in ProductVersion:
        history = metadata.history(product)
        print(f"{product.value}: {len(history)} release(s)")
        for release in history:
            print(
                f"  {str(release.rid):<12} {release.package_version.nuget_style():<10} "
                f"{release.native_version.firebird_style():<16} {release.build_date.isoformat()}  "
                f"{release.publish_date.isoformat() if release.publish_date else 'unpublished'}"
            )


def _relativize(path: Path) -> str:
    try:
        return str(path.relative_to(Path.cwd()))
    except ValueError:
        return str(path)


if __name__ == "__main__":
    main(sys.argv[1:])
