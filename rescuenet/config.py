"""
Configuration
Tunable thresholds for clustering, staleness and ETA estimation.

Defaults mirror the values the mobile map screens shipped with. Any of them
can be overridden through environment variables (or a .env file in the
working directory):

    RESCUENET_CLUSTER_CELL_SIZE      grid cell size in degrees (0.01 ≈ 1.1 km)
    RESCUENET_CLUSTER_ZOOM           zoom level below which clustering kicks in
    RESCUENET_CLUSTER_MIN_COUNT      clustering only when more markers than this
    RESCUENET_STALE_SECONDS          age after which a position report is stale
    RESCUENET_AVG_SPEED_KMH          assumed average ambulance speed
    RESCUENET_REFRESH_SECONDS        map refresh interval in seconds, 0 disables
    RESCUENET_DATA_DIR               directory holding fleet/route snapshots
"""

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
import logging

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

load_dotenv()

# =============================================================================
# DEFAULTS
# =============================================================================

CLUSTER_CELL_SIZE_DEG = 0.01    # Degrees - roughly 1.1 km at the equator
CLUSTER_ZOOM_THRESHOLD = 12.0   # Map zoom level
CLUSTER_MIN_COUNT = 10          # Markers - cluster only above this count
STALE_THRESHOLD = timedelta(minutes=2)
DEFAULT_AVG_SPEED_KMH = 40.0    # km/h - urban ambulance average
REFRESH_INTERVAL_SECONDS = 10
BOUNDS_PADDING_DEG = 0.01

DATA_DIR = Path(__file__).parent.parent / "data"


@dataclass(frozen=True)
class Settings:
    """
    Resolved configuration for one process.

    Attributes:
        cluster_cell_size: Grid cell edge in degrees
        cluster_zoom_threshold: Zoom level below which clustering activates
        cluster_min_count: Minimum marker count (exclusive) for clustering
        stale_threshold: Maximum age of a position report
        avg_speed_kmh: Speed used for naive ETA estimates
        refresh_interval_seconds: App refresh period
        data_dir: Location of the JSON snapshots
    """
    cluster_cell_size: float = CLUSTER_CELL_SIZE_DEG
    cluster_zoom_threshold: float = CLUSTER_ZOOM_THRESHOLD
    cluster_min_count: int = CLUSTER_MIN_COUNT
    stale_threshold: timedelta = STALE_THRESHOLD
    avg_speed_kmh: float = DEFAULT_AVG_SPEED_KMH
    refresh_interval_seconds: int = REFRESH_INTERVAL_SECONDS
    data_dir: Path = DATA_DIR


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring invalid {name}={raw!r}, using default {default}")
        return default


def load_settings() -> Settings:
    """
    Build Settings from the environment, falling back to the defaults.

    Returns:
        Settings instance
    """
    settings = Settings(
        cluster_cell_size=_env_float("RESCUENET_CLUSTER_CELL_SIZE", CLUSTER_CELL_SIZE_DEG),
        cluster_zoom_threshold=_env_float("RESCUENET_CLUSTER_ZOOM", CLUSTER_ZOOM_THRESHOLD),
        cluster_min_count=int(_env_float("RESCUENET_CLUSTER_MIN_COUNT", CLUSTER_MIN_COUNT)),
        stale_threshold=timedelta(
            seconds=_env_float("RESCUENET_STALE_SECONDS", STALE_THRESHOLD.total_seconds())
        ),
        avg_speed_kmh=_env_float("RESCUENET_AVG_SPEED_KMH", DEFAULT_AVG_SPEED_KMH),
        refresh_interval_seconds=int(
            _env_float("RESCUENET_REFRESH_SECONDS", REFRESH_INTERVAL_SECONDS)
        ),
        data_dir=Path(os.environ.get("RESCUENET_DATA_DIR") or DATA_DIR),
    )
    logger.debug(f"Loaded settings: {settings}")
    return settings
