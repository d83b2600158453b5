"""
Configuration management for the fuzzer
"""

import json
import logging
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)

TABLE_CREATION_MODES = ("native", "sql", "mixed")


@dataclass
class RunnerConfig:
    """Settings for one fuzzing run"""
    # General fuzzing parameters
    seed: int = 42
    rounds: int = 3
    queries_per_round: int = 10
    timeout_seconds: float = 2
    log_path: Optional[str] = "logs"
    display_logs: bool = False
    enable_tui: bool = True
    sample_interval_secs: float = 5
    slow_query_ms: int = 1000

    # Table and query generation
    max_column_count: int = 5
    max_row_count: int = 100
    max_expr_level: int = 3
    max_table_count: int = 3
    max_insert_per_table: int = 20
    min_tables_per_round: int = 3
    max_tables_per_round: int = 10
    max_views_per_round: int = 3
    table_creation_mode: str = "mixed"
    oracles: List[str] = field(default_factory=lambda: ["no_crash", "nested_queries"])

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RunnerConfig":
        """Build from a plain dict, rejecting unknown keys and invalid values"""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        config = cls(**data)
        issues = ConfigValidator.validate_config(config.to_dict())
        if issues:
            raise ConfigError("Invalid configuration: " + "; ".join(issues))
        return config

    @classmethod
    def from_file(cls, path: str) -> "RunnerConfig":
        return Config(path).runner

    @classmethod
    def from_cli(cls, args) -> "RunnerConfig":
        """
        Start from the config file (when ``args.config`` is set) or the
        defaults, then apply every CLI flag that was given explicitly.
        """
        config = cls.from_file(args.config) if getattr(args, "config", None) else cls()
        data = config.to_dict()
        for name in data:
            value = getattr(args, name, None)
            if value is not None:
                data[name] = value
        return cls.from_dict(data)


class Config:
    """Configuration file loader (JSON)"""

    def __init__(self, config_path: str = "config.json"):
        self.config_path = config_path
        self._load_config()

    def _load_config(self):
        """Load configuration from file"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config_data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"Config file not found: {self.config_path}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Failed to parse config file {self.config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigError(f"Config file {self.config_path} must hold a JSON object")

        self.runner = RunnerConfig.from_dict(config_data)
        logger.info(f"Loaded configuration from {self.config_path}")

    def save(self, path: Optional[str] = None):
        """Save configuration to file"""
        with open(path or self.config_path, 'w', encoding='utf-8') as f:
            json.dump(self.runner.to_dict(), f, indent=2, ensure_ascii=False)


class ConfigValidator:
    """Validate configuration values"""

    POSITIVE_INT_FIELDS = (
        "rounds", "queries_per_round", "max_column_count", "max_row_count",
        "max_expr_level", "max_table_count", "max_insert_per_table",
        "min_tables_per_round", "max_tables_per_round", "max_views_per_round",
    )

    @staticmethod
    def validate_config(config_data: Dict[str, Any]) -> List[str]:
        """Validate configuration data and return list of issues"""
        # Imported here, the oracle package imports this module
        from .oracles import ORACLES

        issues = []

        seed = config_data.get('seed')
        if not isinstance(seed, int) or isinstance(seed, bool) or not 0 <= seed < 2 ** 64:
            issues.append(f"Invalid seed: {seed!r}")

        for name in ConfigValidator.POSITIVE_INT_FIELDS:
            value = config_data.get(name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                issues.append(f"Invalid {name}: {value!r}")

        for name in ('timeout_seconds', 'sample_interval_secs', 'slow_query_ms'):
            value = config_data.get(name)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value <= 0:
                issues.append(f"Invalid {name}: {value!r}")

        if not issues and config_data['min_tables_per_round'] > config_data['max_tables_per_round']:
            issues.append("min_tables_per_round is larger than max_tables_per_round")

        if config_data.get('table_creation_mode') not in TABLE_CREATION_MODES:
            issues.append(
                f"Invalid table_creation_mode: {config_data.get('table_creation_mode')!r}, "
                f"expected one of {', '.join(TABLE_CREATION_MODES)}"
            )

        oracles = config_data.get('oracles')
        if not isinstance(oracles, list) or not oracles:
            issues.append("oracles must be a non-empty list")
        else:
            for name in oracles:
                if name not in ORACLES:
                    issues.append(f"Unknown oracle: {name!r}")

        log_path = config_data.get('log_path')
        if log_path is not None and not isinstance(log_path, str):
            issues.append(f"Invalid log_path: {log_path!r}")

        return issues
