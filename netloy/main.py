from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from netloy.__version__ import __version__
from netloy.build.factory import PackageBuilderFactory
from netloy.build.options import BuildOptions
from netloy.config.parser import ConfigurationParser
from netloy.core.confirm import Confirm
from netloy.core.logging_manager import configure_logging, get_logger
from netloy.core.platform import PackageType
from netloy.macro.registry import MacroRegistry
from netloy.utils.exceptions import NetloyError, UserCancelledError, ValidationFailedError

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 2


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="netloy",
        description="Netloy - package .NET applications into platform-native installers",
    )
    parser.add_argument(
        "-t",
        "--package-type",
        type=str,
        help=f"Package format ({', '.join(member.value for member in PackageType)})",
    )
    parser.add_argument("-r", "--runtime", type=str, help="Runtime identifier, e.g. linux-x64 (defaults to the host)")
    parser.add_argument(
        "-y", "--skip-all", action="store_true", default=False, help="Answer every question with its default"
    )
    parser.add_argument("-o", "--output-path", type=str, help="Output file or directory")
    parser.add_argument("-p", "--project-path", type=str, help="Project file or directory to publish")
    parser.add_argument("-c", "--publish-config", type=str, default="Release", help="dotnet publish configuration")
    parser.add_argument("-v", "--app-version", type=str, help="Override the version from AppVersionRelease")
    parser.add_argument("--config-path", type=str, help="Path of the .netloy file (searched in the current directory)")
    parser.add_argument(
        "--clean",
        action="store_true",
        default=False,
        help="Run dotnet clean before publishing and remove the build directory afterwards",
    )
    parser.add_argument("--verbose", action="store_true", default=False, help="Log the output of external tools")
    parser.add_argument(
        "--log-level",
        type=str,
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
    )
    parser.add_argument("--log-format", type=str, default="text", choices=["text", "json"])
    parser.add_argument("--log-file", type=str, help="Also write JSON logs to this file")
    parser.add_argument("-n", "--new", metavar="DIR", type=str, help="Create a default configuration file in DIR")
    parser.add_argument("--upgrade-config", action="store_true", default=False, help="Upgrade the configuration file")
    parser.add_argument("--help-macros", action="store_true", default=False, help="List the available macros")
    parser.add_argument("--version", action="version", version=f"netloy {__version__}")
    return parser.parse_args(argv)


def ask_terminal(prompt: str) -> bool:
    """Ask a yes/no question on the terminal; an empty answer means yes."""
    answer = input(f"{prompt} [Y/n] ").strip().lower()
    return answer in ("", "y", "yes")


def build_package(args: argparse.Namespace, confirm: Confirm) -> int:
    package_type = PackageType.parse(args.package_type)
    parser = ConfigurationParser(confirm=confirm, output_path=args.output_path, project_path=args.project_path)
    config = parser.parse(args.config_path)

    if config.config_version != __version__:
        logger.warning(
            "Configuration file version is not compatible with this version of Netloy. "
            "Please upgrade your configuration file",
            config_version=config.config_version or "none",
            netloy_version=__version__,
        )

    options = BuildOptions(
        package_type=package_type,
        runtime=args.runtime,
        output_path=args.output_path,
        project_path=args.project_path,
        unattended=args.skip_all,
        verbose=args.verbose,
        publish_configuration=args.publish_config,
        clean=args.clean,
        app_version=args.app_version,
        config_path=args.config_path,
        clear_after_build=args.clean,
    )
    builder = PackageBuilderFactory(config, options, confirm=confirm).create()
    builder.validate()
    artifact = builder.build()
    print(f"Package created: {artifact}")
    return EXIT_OK


def run(args: argparse.Namespace) -> int:
    confirm = Confirm(unattended=args.skip_all, decide=ask_terminal)

    if args.help_macros:
        print(MacroRegistry.help_text())
        return EXIT_OK

    if args.new:
        path = ConfigurationParser(confirm=confirm).write_default(args.new)
        if path is not None:
            print(f"Configuration file created: {path}")
        return EXIT_OK

    if args.upgrade_config:
        ConfigurationParser(confirm=confirm).upgrade(args.config_path)
        return EXIT_OK

    if not args.package_type:
        logger.error("No package type given. Use -t/--package-type")
        return EXIT_ERROR

    return build_package(args, confirm)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_arguments(argv)
    level = "debug" if args.verbose else args.log_level
    configure_logging(level=level, log_format=args.log_format, log_file=args.log_file)

    try:
        return run(args)
    except UserCancelledError as e:
        logger.warning(str(e))
        return EXIT_CANCELLED
    except ValidationFailedError as e:
        print(str(e), file=sys.stderr)
        return EXIT_ERROR
    except (NetloyError, ValueError) as e:
        logger.error(str(e))
        return EXIT_ERROR
    except KeyboardInterrupt:
        print("\nStopped by user.")
        return EXIT_CANCELLED


if __name__ == "__main__":
    sys.exit(main())
