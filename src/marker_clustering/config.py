import json
import math
import os
import logging
from dataclasses import dataclass, field, fields
from typing import Any, Callable, Optional

from .cluster_marker import ClusterMarker
from .interfaces import HUE_CYAN

logger = logging.getLogger(__name__)

# Settings file picked up by the command line tool when --config is not given
CONFIG_ENV_VAR = "MARKER_CLUSTERING_CONFIG"

KNOWN_STRATEGIES = ("grid", "none")


@dataclass
class ClusteringSettings:
    enabled: bool = True
    strategy: str = "grid"
    # Cell size is 2 ** floor(base_zoom - zoom) / size_divisor degrees
    base_zoom: float = 23.5
    size_divisor: float = 100000.0
    cluster_hue: float = HUE_CYAN
    cluster_factory: Callable[..., Any] = field(default=ClusterMarker, repr=False)

    def __post_init__(self):
        if self.strategy not in KNOWN_STRATEGIES:
            raise ValueError(
                f"Unknown clustering strategy: {self.strategy}. Available: {list(KNOWN_STRATEGIES)}"
            )
        if not math.isfinite(self.base_zoom):
            raise ValueError(f"base_zoom must be finite, got {self.base_zoom}")
        if not (math.isfinite(self.size_divisor) and self.size_divisor > 0):
            raise ValueError(f"size_divisor must be positive, got {self.size_divisor}")
        if not 0.0 <= self.cluster_hue < 360.0:
            raise ValueError(f"cluster_hue must be in [0, 360), got {self.cluster_hue}")

    @property
    def max_clustering_zoom(self) -> float:
        """Zoom levels strictly above this value disable clustering."""
        return self.base_zoom


def load_settings(path: str) -> ClusteringSettings:
    """Load :class:`ClusteringSettings` from a JSON or YAML file."""
    if not os.path.exists(path):
        raise FileNotFoundError(path)
    with open(path) as f:
        if path.lower().endswith(".json"):
            data = json.load(f)
        else:
            import yaml

            data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise ValueError("Configuration file must contain a mapping")
    allowed = {f.name for f in fields(ClusteringSettings)} - {"cluster_factory"}
    unknown = sorted(set(data) - allowed)
    if unknown:
        raise ValueError(f"Unknown clustering settings: {unknown}")
    logger.info("Loaded clustering settings from %s", path)
    return ClusteringSettings(**data)


def default_settings_path() -> Optional[str]:
    """Return the settings file named by ``MARKER_CLUSTERING_CONFIG``, if any."""

    # Read on every call so tests can override the variable after import.
    return os.environ.get(CONFIG_ENV_VAR) or None
