from dataclasses import dataclass, field
from typing import List, Optional
import yaml
from pathlib import Path

from core.exceptions import ConfigError

@dataclass
class MetricWeightsConfig:
    """Configuration for composite distance metrics"""
    histogram_regions: int = 2  # Sub-histograms per multi-region vector
    region_weights: Optional[List[float]] = None  # None = equal weights
    color_weight: float = 0.5
    texture_weight: float = 0.5
    color_bins: Optional[int] = None  # None = split texture-color vectors in half


@dataclass
class RankingConfig:
    """Configuration for top-N ranking"""
    default_metric: str = "sum-of-squared-difference"
    top_n: int = 3
    n_workers: int = 1  # Threads used for scoring


@dataclass
class DisplayConfig:
    """Configuration for result display"""
    tile_size: int = 256
    columns: int = 4
    window_title: str = "matches"


@dataclass
class SystemConfig:
    """System-wide configuration"""
    log_level: str = "INFO"
    log_dir: str = "logs"
    structured_logs: bool = False

    # Composite metrics
    metrics: MetricWeightsConfig = field(
        default_factory=MetricWeightsConfig
    )

    # Ranking
    ranking: RankingConfig = field(
        default_factory=RankingConfig
    )

    # Display
    display: DisplayConfig = field(
        default_factory=DisplayConfig
    )

    def save(self, path: str = "config.yaml"):
        """Save configuration to YAML file"""
        config_dict = {
            'log_level': self.log_level,
            'log_dir': self.log_dir,
            'structured_logs': self.structured_logs,
            'metrics': {
                'histogram_regions': self.metrics.histogram_regions,
                'region_weights': self.metrics.region_weights,
                'color_weight': self.metrics.color_weight,
                'texture_weight': self.metrics.texture_weight,
                'color_bins': self.metrics.color_bins
            },
            'ranking': {
                'default_metric': self.ranking.default_metric,
                'top_n': self.ranking.top_n,
                'n_workers': self.ranking.n_workers
            },
            'display': {
                'tile_size': self.display.tile_size,
                'columns': self.display.columns,
                'window_title': self.display.window_title
            }
        }

        with open(path, 'w') as f:
            yaml.dump(config_dict, f, default_flow_style=False, indent=2)

    @classmethod
    def load(cls, path: str = "config.yaml") -> 'SystemConfig':
        """Load configuration from YAML file"""
        if not Path(path).exists():
            return cls()  # Return default config

        try:
            with open(path, 'r', encoding='utf-8') as f:
                config_dict = yaml.safe_load(f) or {}
        except (yaml.YAMLError, UnicodeDecodeError, OSError) as e:
            raise ConfigError(f"Can not read config file {path}: {e}") from e

        if not isinstance(config_dict, dict):
            raise ConfigError(f"Config file {path} must hold a mapping")

        config = cls()

        # Load system settings
        config.log_level = config_dict.get('log_level', config.log_level)
        config.log_dir = config_dict.get('log_dir', config.log_dir)
        config.structured_logs = config_dict.get('structured_logs', config.structured_logs)

        # Load composite metric settings
        if 'metrics' in config_dict:
            mw = _section(config_dict, 'metrics')
            config.metrics = MetricWeightsConfig(
                histogram_regions=mw.get('histogram_regions', config.metrics.histogram_regions),
                region_weights=mw.get('region_weights', config.metrics.region_weights),
                color_weight=mw.get('color_weight', config.metrics.color_weight),
                texture_weight=mw.get('texture_weight', config.metrics.texture_weight),
                color_bins=mw.get('color_bins', config.metrics.color_bins)
            )

        # Load ranking settings
        if 'ranking' in config_dict:
            rk = _section(config_dict, 'ranking')
            config.ranking = RankingConfig(
                default_metric=rk.get('default_metric', config.ranking.default_metric),
                top_n=rk.get('top_n', config.ranking.top_n),
                n_workers=rk.get('n_workers', config.ranking.n_workers)
            )

        # Load display settings
        if 'display' in config_dict:
            dp = _section(config_dict, 'display')
            config.display = DisplayConfig(
                tile_size=dp.get('tile_size', config.display.tile_size),
                columns=dp.get('columns', config.display.columns),
                window_title=dp.get('window_title', config.display.window_title)
            )

        return config


def _section(config_dict: dict, key: str) -> dict:
    """Return a nested config section, which must be a mapping"""
    section = config_dict[key]
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"Config section '{key}' must be a mapping")
    return section
