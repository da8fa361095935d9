"""
Exec input configuration management.

Handles loading, saving, and validating the configuration of a single
exec input: the command to run and either the interval or the cron
schedule it runs on.
"""

import json
import logging
import numbers
import os
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from apscheduler.triggers.cron import CronTrigger
from dotenv import load_dotenv

from exec_input.codecs import CODECS
from exec_input.ecs import EcsCompatibility
from exec_input.errors import ConfigurationError

load_dotenv()

logger = logging.getLogger(__name__)

CRON_FIELDS = ('minute', 'hour', 'day', 'month', 'day_of_week')
CRON_FIELDS_WITH_SECONDS = ('second',) + CRON_FIELDS

# Cron counts weekdays from Sunday (0 or 7), APScheduler from Monday (0)
WEEKDAY_NAMES = ('sun', 'mon', 'tue', 'wed', 'thu', 'fri', 'sat')


@dataclass
class ExecConfig:
    """
    Options of one exec input.

    Exactly one of interval (seconds, fractions allowed) or schedule
    (cron expression) must be set.
    """
    command: str
    interval: Optional[float] = None
    schedule: Optional[str] = None
    codec: str = "plain"
    charset: str = "utf-8"
    ecs_compatibility: str = "disabled"
    type: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    add_field: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ExecConfig':
        """Build from a plain dict, rejecting unknown options."""
        known = set(cls.__dataclass_fields__)
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown exec input option(s): {', '.join(unknown)}")
        if 'command' not in data:
            raise ConfigurationError("exec input: 'command' is required")
        return cls(**data)

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not isinstance(self.command, str) or not self.command.strip():
            errors.append("'command' cannot be empty")

        if (self.interval is None) == (self.schedule is None):
            errors.append("either 'interval' or 'schedule' option must be defined")

        if self.interval is not None:
            if isinstance(self.interval, bool) or not isinstance(self.interval, numbers.Real):
                errors.append(f"'interval' must be a number, got {self.interval!r}")
            elif self.interval < 0:
                errors.append("'interval' cannot be negative")

        if self.schedule is not None:
            try:
                parse_cron_expression(self.schedule)
            except ConfigurationError as e:
                errors.append(str(e))

        if (self.codec or "").lower() not in CODECS:
            errors.append(f"unknown codec '{self.codec}'")

        try:
            EcsCompatibility.from_setting(self.ecs_compatibility)
        except ConfigurationError as e:
            errors.append(str(e))

        if not isinstance(self.tags, list):
            errors.append("'tags' must be a list")
        if not isinstance(self.add_field, dict):
            errors.append("'add_field' must be a mapping")

        return errors


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = None


def _is_timezone(name: str) -> bool:
    if not any(c.isalpha() for c in name):
        return False
    try:
        ZoneInfo(name)
        return True
    except (ZoneInfoNotFoundError, ValueError):
        return False


def _cron_weekday(value: str, cron_expr: str) -> int:
    if not value.isdigit() or int(value) > 7:
        raise ConfigurationError(
            f"Invalid cron expression '{cron_expr}': day of week '{value}' must be 0-7"
        )
    return int(value)


def translate_day_of_week(expression: str, cron_expr: str = None) -> str:
    """
    Rewrite a cron day-of-week field for APScheduler.

    Numeric values, ranges and steps are expanded into weekday names so
    that 0 and 7 mean Sunday as in cron. Names and "*" are kept as they are.

    Args:
        expression: Day-of-week field, e.g. "1-5", "0,6", "*/2", "mon-fri"
        cron_expr: Full expression, for error messages

    Returns:
        Equivalent APScheduler day_of_week expression
    """
    cron_expr = cron_expr or expression
    items = []
    for item in expression.split(','):
        base, _, step = item.partition('/')
        if base == '*' and not step:
            return '*'
        if not (base == '*' or base[:1].isdigit()):
            items.append(item)
            continue

        if step and not step.isdigit():
            raise ConfigurationError(f"Invalid cron expression '{cron_expr}': bad step '{step}'")
        if base == '*':
            first, last = 0, 6
        elif '-' in base:
            start, _, end = base.partition('-')
            first, last = _cron_weekday(start, cron_expr), _cron_weekday(end, cron_expr)
        else:
            first = last = _cron_weekday(base, cron_expr)
            if step:
                last = 6
        if first > last or (step and int(step) == 0):
            raise ConfigurationError(f"Invalid cron expression '{cron_expr}': bad day of week '{item}'")

        for day in range(first, last + 1, int(step or 1)):
            name = WEEKDAY_NAMES[day % 7]
            if name not in items:
                items.append(name)

    return ','.join(items)


def parse_cron_expression(cron_expr: str) -> Tuple[Dict[str, str], Optional[str]]:
    """
    Parse cron expression into APScheduler kwargs.

    Accepts the classic five fields, or six with a leading seconds field,
    optionally followed by a time zone name.

    Args:
        cron_expr: Cron expression (e.g., "0 2 * * *", "*/5 * * * * * UTC")

    Returns:
        Tuple of (APScheduler cron parameters, time zone name or None)

    Raises:
        ConfigurationError: If the expression is malformed
    """
    if not isinstance(cron_expr, str):
        raise ConfigurationError(f"Invalid cron expression: {cron_expr!r}")

    parts = cron_expr.split()
    timezone = None
    if len(parts) in (6, 7) and _is_timezone(parts[-1]):
        timezone = parts.pop()

    if len(parts) == 5:
        fields = dict(zip(CRON_FIELDS, parts))
    elif len(parts) == 6:
        fields = dict(zip(CRON_FIELDS_WITH_SECONDS, parts))
    else:
        raise ConfigurationError(f"Invalid cron expression: {cron_expr}")

    fields['day_of_week'] = translate_day_of_week(fields['day_of_week'], cron_expr)

    # CronTrigger validates each field as it is built
    try:
        CronTrigger(timezone=timezone, **fields)
    except ValueError as e:
        raise ConfigurationError(f"Invalid cron expression '{cron_expr}': {e}") from e

    return fields, timezone


def build_cron_trigger(cron_expr: str) -> CronTrigger:
    """Build the APScheduler trigger for a cron expression."""
    fields, timezone = parse_cron_expression(cron_expr)
    return CronTrigger(timezone=timezone, **fields)


class ExecInputConfig:
    """
    Exec input configuration manager.

    Loads the exec input and logging settings from a JSON file.

    Configuration path priority:
    1. Explicit config_path argument
    2. EXEC_INPUT_CONFIG_PATH environment variable
    3. Default: ~/.exec_input/config.json

    File layout:
        {
          "input": {"command": "uptime", "interval": 60},
          "logging": {"level": "INFO", "file": null}
        }
    """

    DEFAULT_CONFIG_PATH = Path.home() / ".exec_input" / "config.json"

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses env var or default.
        """
        if config_path:
            self.config_path = Path(config_path).expanduser()
        elif os.environ.get('EXEC_INPUT_CONFIG_PATH'):
            self.config_path = Path(os.environ['EXEC_INPUT_CONFIG_PATH']).expanduser()
        else:
            self.config_path = self.DEFAULT_CONFIG_PATH
        self.input: Optional[ExecConfig] = None
        self.logging: LoggingConfig = LoggingConfig()

        if self.config_path.exists():
            self.load()
        else:
            logger.info(f"No config found at {self.config_path}")

    def load(self):
        """Load configuration from JSON file."""
        try:
            with open(self.config_path, 'r') as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.error(f"Failed to load config from {self.config_path}: {e}")
            raise ConfigurationError(f"Cannot read {self.config_path}: {e}") from e

        if 'input' in data:
            self.input = ExecConfig.from_dict(data['input'])
        if 'logging' in data:
            self.logging = LoggingConfig(**data['logging'])

        logger.info(f"Loaded configuration from {self.config_path}")

    def save(self):
        """Save configuration to JSON file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            'input': asdict(self.input) if self.input else None,
            'logging': asdict(self.logging),
        }
        if data['input'] is None:
            del data['input']

        with open(self.config_path, 'w') as f:
            json.dump(data, f, indent=2)

        logger.info(f"Saved configuration to {self.config_path}")

    def validate(self) -> List[str]:
        """Validate configuration; returns a list of errors (empty if valid)."""
        if self.input is None:
            return [f"No 'input' section in {self.config_path}"]
        return self.input.validate()

    def __repr__(self):
        return f"ExecInputConfig(input={self.input!r}, path={self.config_path})"
