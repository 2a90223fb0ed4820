#!/usr/bin/env python3
"""Entry point for Beszel Agent Manager."""

import argparse
import logging
import sys
from typing import Iterable, List, Optional, Sequence

import yaml

from . import __version__
from .core.brew import BrewLocator, ServiceManager
from .core.config_manager import STRING_SETTINGS, ConfigManager, validate_setting
from .core.env_file import EnvFile
from .core.log_tailer import tail_log
from .core.shell import ShellRunner
from .models.result import CommandResult
from .utils.constants import (
    APP_NAME,
    CONFIG_DIR,
    ENV_HUB_URL,
    ENV_KEY,
    ENV_LISTEN,
    ENV_TOKEN,
    LOG_FILE,
    WELL_KNOWN_KEYS,
)

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Set up application logging.

    Args:
        verbose: Log debug messages and echo them to the terminal
    """
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(LOG_FILE),
            stream_handler
        ]
    )


def _load_settings(args: argparse.Namespace) -> ConfigManager:
    config_manager = ConfigManager(getattr(args, "config", None))
    config_manager.load_config()
    return config_manager


def _service_manager(config_manager: ConfigManager) -> ServiceManager:
    runner = ShellRunner()
    locator = BrewLocator(runner, config_manager.get_setting("brew_paths"))
    return ServiceManager(
        service_name=config_manager.get_setting("service_name"),
        tap_name=config_manager.get_setting("tap_name"),
        locator=locator,
        runner=runner,
    )


def _exit_code(results: Iterable[CommandResult]) -> int:
    for result in results:
        if result.ok:
            continue
        return result.exit_code if 0 < result.exit_code < 256 else 1
    return 0


def _print_result(args: Sequence[str], result: CommandResult):
    print(f"$ brew {' '.join(args)}")
    output = result.combined
    if output:
        print(output)


def _run_brew(args: argparse.Namespace, action: str) -> int:
    services = _service_manager(_load_settings(args))
    name = services.service_name

    if action == "install":
        steps = [["tap", services.tap_name], ["install", name], ["services", "start", name]]
        results = services.install()
    elif action == "update":
        steps = [["upgrade", name]]
        results = [services.upgrade()]
    else:
        steps = [["services", action, name]]
        results = [getattr(services, action)()]

    for step, result in zip(steps, results):
        _print_result(step, result)
    return _exit_code(results)


def cmd_brew(args: argparse.Namespace) -> int:
    return _run_brew(args, args.command)


def cmd_status(args: argparse.Namespace) -> int:
    services = _service_manager(_load_settings(args))
    result = services.info_json()
    _print_result(["services", "info", services.service_name, "--json"], result)
    if result.ok:
        status = services.parse_service_status(result)
        print(f"Status: {status.value}")
        print(f"Running: {'yes' if status.is_running else 'no'}")
    return _exit_code([result])


def cmd_paths(args: argparse.Namespace) -> int:
    config_manager = _load_settings(args)
    brew_path = _service_manager(config_manager).locator.detect()
    print(f"Env file: {config_manager.env_path}")
    print(f"Log file: {config_manager.log_path}")
    print(f"Homebrew: {brew_path or 'not detected'}")
    return 0


def cmd_env_show(args: argparse.Namespace) -> int:
    env_file = EnvFile(_load_settings(args).env_path)
    try:
        parsed = env_file.read()
    except OSError as e:
        print(f"Failed loading env: {e}", file=sys.stderr)
        return 1

    print(f"# {env_file.path}")
    if parsed.is_empty():
        print("# (no values set)")
        return 0

    for key in WELL_KNOWN_KEYS:
        if key in parsed.values:
            print(f"{key}={parsed.values[key]}")
    for key in sorted(k for k in parsed.values if k not in WELL_KNOWN_KEYS):
        print(f"{key}={parsed.values[key]}")
    for line in parsed.extra_lines:
        print(line)
    return 0


def _split_assignment(text: str) -> Optional[List[str]]:
    name, sep, value = text.partition("=")
    if not sep or not name.strip():
        return None
    return [name.strip(), value]


def cmd_env_set(args: argparse.Namespace) -> int:
    config_manager = _load_settings(args)
    env_file = EnvFile(config_manager.env_path)
    try:
        preserve = env_file.read()
    except OSError as e:
        print(f"Failed loading env: {e}", file=sys.stderr)
        return 1

    fields = {key: preserve.get(key) for key in WELL_KNOWN_KEYS}
    for key, value in ((ENV_KEY, args.key), (ENV_TOKEN, args.token),
                       (ENV_HUB_URL, args.hub_url), (ENV_LISTEN, args.listen)):
        if value is not None:
            fields[key] = value

    for assignment in args.var:
        pair = _split_assignment(assignment)
        if pair is None:
            print(f"Invalid assignment (expected NAME=VALUE): {assignment}", file=sys.stderr)
            return 2
        name, value = pair
        if name in fields:
            fields[name] = value
        else:
            preserve.values[name] = value.strip()

    for name in args.unset:
        if name in fields:
            fields[name] = ""
        else:
            preserve.values.pop(name, None)

    listen = fields[ENV_LISTEN].strip() or str(config_manager.get_setting("default_listen", ""))

    try:
        env_file.write(
            key=fields[ENV_KEY],
            token=fields[ENV_TOKEN],
            hub_url=fields[ENV_HUB_URL],
            listen=listen,
            preserve=preserve,
        )
    except (OSError, ValueError) as e:
        logger.error(f"Failed saving env: {e}")
        print(f"Failed saving env: {e}", file=sys.stderr)
        return 1

    print(f"Saved env to {env_file.path}")
    return 0


def cmd_log(args: argparse.Namespace) -> int:
    config_manager = _load_settings(args)
    max_bytes = args.bytes if args.bytes is not None else config_manager.get_setting("log_max_bytes")
    print(tail_log(config_manager.log_path, max_bytes=max_bytes))
    return 0


def cmd_settings_show(args: argparse.Namespace) -> int:
    config_manager = _load_settings(args)
    print(yaml.safe_dump(config_manager.settings, default_flow_style=False, sort_keys=False), end="")
    return 0


def cmd_settings_set(args: argparse.Namespace) -> int:
    config_manager = _load_settings(args)
    if args.name in STRING_SETTINGS:
        value = args.value
    else:
        try:
            value = yaml.safe_load(args.value)
        except yaml.YAMLError:
            value = args.value
        if value is None:
            value = args.value

    error = validate_setting(args.name, value)
    if error:
        print(f"Invalid value for {args.name}: {error}", file=sys.stderr)
        return 2

    if not config_manager.set_setting(args.name, value):
        print(f"Failed saving settings to {config_manager.config_file}", file=sys.stderr)
        return 1
    print(f"{args.name} = {value!r}")
    return 0


def _positive_int(text: str) -> int:
    try:
        value = int(text)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {text!r}")
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1: {value}")
    return value


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="beszelapp",
        description=f"{APP_NAME} - control beszel-agent through Homebrew",
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('--config', help='Settings file (default: ~/.config/beszelapp/config.yaml)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Verbose logging')

    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("install", "Tap, install and start the agent"),
        ("update", "Upgrade the agent"),
        ("start", "Start the agent service"),
        ("stop", "Stop the agent service"),
        ("restart", "Restart the agent service"),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.set_defaults(func=cmd_brew)

    status_parser = subparsers.add_parser("status", help="Show agent service info")
    status_parser.set_defaults(func=cmd_status)

    paths_parser = subparsers.add_parser("paths", help="Show env file, log file and Homebrew paths")
    paths_parser.set_defaults(func=cmd_paths)

    env_parser = subparsers.add_parser("env", help="Show or edit the agent env file")
    env_sub = env_parser.add_subparsers(dest="env_command", required=True)

    env_show = env_sub.add_parser("show", help="Print the env file")
    env_show.set_defaults(func=cmd_env_show)

    env_set = env_sub.add_parser("set", help="Update values in the env file")
    env_set.add_argument('--key', help='Public key (KEY)')
    env_set.add_argument('--token', help='Registration token (TOKEN)')
    env_set.add_argument('--hub-url', help='Hub URL (HUB_URL)')
    env_set.add_argument('--listen', help='Listen port or address (LISTEN)')
    env_set.add_argument('--var', action='append', default=[], metavar='NAME=VALUE',
                         help='Set any variable (repeatable)')
    env_set.add_argument('--unset', action='append', default=[], metavar='NAME',
                         help='Remove a variable (repeatable)')
    env_set.set_defaults(func=cmd_env_set)

    log_parser = subparsers.add_parser("log", help="Print the end of the agent log")
    log_parser.add_argument('--bytes', type=_positive_int, help='Maximum bytes to read from the end')
    log_parser.set_defaults(func=cmd_log)

    settings_parser = subparsers.add_parser("settings", help="Show or change app settings")
    settings_sub = settings_parser.add_subparsers(dest="settings_command", required=True)

    settings_show = settings_sub.add_parser("show", help="Print settings")
    settings_show.set_defaults(func=cmd_settings_show)

    settings_set = settings_sub.add_parser("set", help="Change a setting (value parsed as YAML)")
    settings_set.add_argument('name')
    settings_set.add_argument('value')
    settings_set.set_defaults(func=cmd_settings_set)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger.debug(f"Running command: {args.command}")

    try:
        return args.func(args)
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
