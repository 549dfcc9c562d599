"""Configuration constants and environment overrides."""

import os

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.environ.get(name, "").strip()
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.environ.get(name, "").strip()
    return float(value) if value else default


# ── Ingestion ────────────────────────────────────────────────────────────
# Samples between progress log lines while reading a point cloud
PROGRESS_INTERVAL = _env_int("TERRAINBUILDER_PROGRESS_INTERVAL", 4194304)

# Points pulled from a LAS/LAZ file per chunk
CHUNK_SIZE = _env_int("TERRAINBUILDER_CHUNK_SIZE", 1048576)

# ── Mesh defaults ────────────────────────────────────────────────────────
DEFAULT_Z_SCALING = _env_float("TERRAINBUILDER_Z_SCALING", 1.0)
DEFAULT_BASE_THICKNESS = _env_float("TERRAINBUILDER_BASE_THICKNESS", 10.0)

# ── Projection ───────────────────────────────────────────────────────────
# Leave unset to pick the zone from the geometry's longitude
_utm_zone = os.environ.get("TERRAINBUILDER_UTM_ZONE", "").strip()
UTM_ZONE = int(_utm_zone) if _utm_zone else None
