import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any

import yaml

from exceptions import InvalidInputError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("config.yaml")


@dataclass
class ZKPConfig:
    num_nodes: int = 8
    max_rounds: int = 5
    round_timeout_seconds: float = 60

    def __post_init__(self):
        if self.num_nodes < 2:
            raise InvalidInputError(
                f"num_nodes must be at least 2, got {self.num_nodes}")
        if self.max_rounds < 1:
            raise InvalidInputError(
                f"max_rounds must be at least 1, got {self.max_rounds}")
        if self.round_timeout_seconds <= 0:
            raise InvalidInputError("round_timeout_seconds must be positive")


@dataclass
class ECDHConfig:
    # n·P == O check on every peer key
    verify_peer_subgroup: bool = True


@dataclass
class SessionConfig:
    session_timeout_minutes: float = 30
    max_concurrent_sessions: int = 10000
    cleanup_interval_minutes: float = 5

    def __post_init__(self):
        if self.session_timeout_minutes <= 0:
            raise InvalidInputError("session_timeout_minutes must be positive")
        if self.max_concurrent_sessions < 1:
            raise InvalidInputError(
                "max_concurrent_sessions must be at least 1")
        if self.cleanup_interval_minutes <= 0:
            raise InvalidInputError(
                "cleanup_interval_minutes must be positive")

    @property
    def session_timeout_seconds(self) -> float:
        return self.session_timeout_minutes * 60


@dataclass
class SystemConfig:
    zkp_config: ZKPConfig = field(default_factory=ZKPConfig)
    ecdh_config: ECDHConfig = field(default_factory=ECDHConfig)
    session_config: SessionConfig = field(default_factory=SessionConfig)

    log_dir: Path = field(default_factory=lambda: Path("logs"))
    results_dir: Path = field(default_factory=lambda: Path("results"))
    log_level: str = "INFO"
    enable_benchmarking: bool = True

    def __post_init__(self):
        self.log_dir = Path(self.log_dir)
        self.results_dir = Path(self.results_dir)
        self.log_level = str(self.log_level).upper()
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise InvalidInputError(f"Unknown log level {self.log_level}")

    def ensure_directories(self):
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.results_dir.mkdir(parents=True, exist_ok=True)


def config_from_dict(config_data: Dict[str, Any]) -> SystemConfig:
    """Build a SystemConfig from the nested YAML layout, defaulting missing keys"""
    zkp_data = config_data.get('zkp', {}) or {}
    zkp_config = ZKPConfig(
        num_nodes=zkp_data.get('num_nodes', 8),
        max_rounds=zkp_data.get('max_rounds', 5),
        round_timeout_seconds=zkp_data.get('round_timeout_seconds', 60)
    )

    ecdh_data = config_data.get('ecdh', {}) or {}
    ecdh_config = ECDHConfig(
        verify_peer_subgroup=ecdh_data.get('verify_peer_subgroup', True)
    )

    session_data = config_data.get('sessions', {}) or {}
    session_config = SessionConfig(
        session_timeout_minutes=session_data.get(
            'session_timeout_minutes', 30),
        max_concurrent_sessions=session_data.get(
            'max_concurrent_sessions', 10000),
        cleanup_interval_minutes=session_data.get(
            'cleanup_interval_minutes', 5)
    )

    return SystemConfig(
        zkp_config=zkp_config,
        ecdh_config=ecdh_config,
        session_config=session_config,
        log_dir=Path(config_data.get('log_dir', 'logs')),
        results_dir=Path(config_data.get('results_dir', 'results')),
        log_level=config_data.get('log_level', 'INFO'),
        enable_benchmarking=config_data.get('enable_benchmarking', True)
    )


def config_to_dict(config: SystemConfig) -> Dict[str, Any]:
    return {
        'zkp': {
            'num_nodes': config.zkp_config.num_nodes,
            'max_rounds': config.zkp_config.max_rounds,
            'round_timeout_seconds': config.zkp_config.round_timeout_seconds
        },
        'ecdh': {
            'verify_peer_subgroup': config.ecdh_config.verify_peer_subgroup
        },
        'sessions': {
            'session_timeout_minutes': config.session_config.session_timeout_minutes,
            'max_concurrent_sessions': config.session_config.max_concurrent_sessions,
            'cleanup_interval_minutes': config.session_config.cleanup_interval_minutes
        },
        'log_dir': str(config.log_dir),
        'results_dir': str(config.results_dir),
        'log_level': config.log_level,
        'enable_benchmarking': config.enable_benchmarking
    }


def load_config(config_path: Optional[Path] = None) -> SystemConfig:
    """Load configuration from file or return default"""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    if config_path.exists():
        try:
            with open(config_path, 'r') as f:
                config_data = yaml.safe_load(f) or {}
            if not isinstance(config_data, dict):
                raise InvalidInputError("Top level of config must be a mapping")
            return config_from_dict(config_data)
        except (OSError, yaml.YAMLError, InvalidInputError) as e:
            logger.warning(f"Could not load config file {config_path}: {e}")
            logger.warning("Using default configuration")

    return SystemConfig()


def save_config(config: SystemConfig, config_path: Optional[Path] = None):
    """Save configuration to YAML file"""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
    config_path = Path(config_path)

    try:
        with open(config_path, 'w') as f:
            yaml.safe_dump(config_to_dict(config), f, default_flow_style=False)
    except OSError as e:
        logger.warning(f"Could not save config file {config_path}: {e}")
