"""
Command-line interface for the exec input.

Provides CLI commands for:
- Running a command on an interval or cron schedule, printing events as JSON lines
- Checking a configuration without running anything
"""

import argparse
import logging
import signal
import sys
from dataclasses import asdict
from pathlib import Path
from typing import Optional

from exec_input.config import ExecConfig, ExecInputConfig
from exec_input.ecs import resolve_field_paths
from exec_input.errors import ConfigurationError
from exec_input.service import ExecInput
from exec_input.sinks import JsonLinesSink

logger = logging.getLogger(__name__)


def setup_logging(log_file: str = None, verbose: bool = False, level: str = "INFO"):
    """Setup logging configuration."""
    level = logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO)

    # Console handler; stdout carries the events
    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_formatter = logging.Formatter(
        '%(asctime)s [%(levelname)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    console_handler.setFormatter(console_formatter)

    # Root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.addHandler(console_handler)

    # File handler
    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level)
        file_formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(name)s: %(message)s'
        )
        file_handler.setFormatter(file_formatter)
        root_logger.addHandler(file_handler)


def build_exec_config(args, file_config: Optional[ExecInputConfig] = None) -> ExecConfig:
    """
    Merge the config file's input section with command-line overrides.

    Giving --interval on the command line drops a schedule from the file
    and vice versa.
    """
    if file_config is not None and file_config.input is not None:
        options = asdict(file_config.input)
    else:
        options = {}

    if args.command:
        options['command'] = args.command
    if args.interval is not None:
        options['interval'] = args.interval
        options['schedule'] = None
    if args.schedule:
        options['schedule'] = args.schedule
        options['interval'] = None
    if args.codec:
        options['codec'] = args.codec
    if args.ecs_compatibility:
        options['ecs_compatibility'] = args.ecs_compatibility
    if args.tag:
        options['tags'] = list(options.get('tags') or []) + args.tag

    if 'command' not in options:
        raise ConfigurationError("exec input: 'command' is required (use --command or a config file)")
    return ExecConfig.from_dict(options)


def _load_file_config(args) -> Optional[ExecInputConfig]:
    if args.config or not (args.command and (args.interval is not None or args.schedule)):
        return ExecInputConfig(args.config)
    return None


def cmd_run(args):
    """Run the exec input until interrupted."""
    file_config = _load_file_config(args)
    logging_config = file_config.logging if file_config else None
    setup_logging(
        log_file=args.log_file or (logging_config.file if logging_config else None),
        verbose=args.verbose,
        level=logging_config.level if logging_config else "INFO"
    )

    try:
        exec_input = ExecInput(build_exec_config(args, file_config))
        exec_input.register()
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(2)

    sink = JsonLinesSink(sys.stdout)
    if args.once:
        exec_input.execute(sink)
        return

    def signal_handler(signum, frame):
        logger.info(f"Received signal {signum}, shutting down...")
        exec_input.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    exec_input.run(sink)


def cmd_check(args):
    """Validate configuration and show where annotations will be written."""
    setup_logging(verbose=args.verbose, level="WARNING")

    try:
        config = build_exec_config(args, _load_file_config(args))
    except ConfigurationError as e:
        print(f"✗ {e}")
        sys.exit(2)

    errors = config.validate()
    if errors:
        print("✗ Configuration is invalid:")
        for error in errors:
            print(f"  - {error}")
        sys.exit(2)

    paths = resolve_field_paths(config.ecs_compatibility)
    print("✓ Configuration is valid\n")
    print(f"  Command:   {config.command}")
    if config.schedule is not None:
        print(f"  Schedule:  {config.schedule}")
    else:
        print(f"  Interval:  {config.interval}s")
    print(f"  Codec:     {config.codec}")
    print(f"  ECS:       {config.ecs_compatibility}")
    print("\n  Annotation fields:")
    for name, path in asdict(paths).items():
        print(f"    {name:<20} {path or '(not written)'}")


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='exec-input',
        description='Periodically run a command and emit its output as JSON events'
    )
    subparsers = parser.add_subparsers(dest='subcommand')

    def add_common(sub):
        sub.add_argument('--config', help='Path to JSON configuration file')
        sub.add_argument('--command', help='Command to run (overrides config file)')
        group = sub.add_mutually_exclusive_group()
        group.add_argument('--interval', type=float, help='Seconds between runs')
        group.add_argument('--schedule', help='Cron expression, e.g. "*/5 * * * *"')
        sub.add_argument('--codec', help='Output decoder: plain, line or json')
        sub.add_argument('--ecs-compatibility', help='disabled, v1 or v8')
        sub.add_argument('--tag', action='append', help='Tag added to every event (repeatable)')
        sub.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')

    run_parser = subparsers.add_parser('run', help='Run the command until interrupted')
    add_common(run_parser)
    run_parser.add_argument('--log-file', help='Also write logs to this file')
    run_parser.add_argument('--once', action='store_true', help='Run the command a single time and exit')
    run_parser.set_defaults(func=cmd_run)

    check_parser = subparsers.add_parser('check', help='Validate configuration')
    add_common(check_parser)
    check_parser.set_defaults(func=cmd_check)

    return parser


def main(argv=None):
    parser = create_parser()
    args = parser.parse_args(argv)

    if not getattr(args, 'func', None):
        parser.print_help()
        sys.exit(1)

    args.func(args)


if __name__ == '__main__':
    main()
