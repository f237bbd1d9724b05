import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

import pandas as pd
from tqdm.auto import tqdm

from .config import ClusteringSettings, default_settings_path, load_settings
from .grid import Disabled
from .memory_map import InMemoryMap, SimpleMarker
from .strategy import ClusteringStrategy, GridClusteringStrategy, create_strategy

logger = logging.getLogger(__name__)

OUTPUT_COLUMNS = [
    "zoom",
    "cell_size",
    "row",
    "col",
    "members",
    "visible_members",
    "lat",
    "lon",
    "displayed",
]

_TRUE_STRINGS = {"1", "true", "yes", "y", "t"}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_STRINGS
    if pd.isna(value):
        return True
    return bool(value)


def load_markers(path: str) -> List[SimpleMarker]:
    """Read markers from a CSV file with ``lat``, ``lon`` and optional ``visible``/``name``."""
    df = pd.read_csv(path)
    missing = {"lat", "lon"} - set(df.columns)
    if missing:
        raise ValueError(f"{path} is missing required columns: {sorted(missing)}")
    markers: List[SimpleMarker] = []
    for rec in df.to_dict("records"):
        name = rec.get("name")
        markers.append(
            SimpleMarker(
                lat=float(rec["lat"]),
                lon=float(rec["lon"]),
                visible=_parse_bool(rec.get("visible", True)),
                name=None if name is None or pd.isna(name) else str(name),
            )
        )
    return markers


def summarize(strategy: ClusteringStrategy, markers: List[SimpleMarker], zoom: float) -> List[Dict[str, Any]]:
    """Return one row per cluster, or per marker when nothing is clustered."""
    if not isinstance(strategy, GridClusteringStrategy) or isinstance(strategy.state, Disabled):
        return [
            {
                "zoom": zoom,
                "cell_size": 0.0,
                "row": None,
                "col": None,
                "members": 1,
                "visible_members": int(m.visible),
                "lat": m.lat,
                "lon": m.lon,
                "displayed": m.displayed,
            }
            for m in markers
        ]

    rows: List[Dict[str, Any]] = []
    for (row, col), cluster in sorted(strategy.clusters.items()):
        members = cluster.members()
        lat, lon = cluster.handle.position
        rows.append(
            {
                "zoom": zoom,
                "cell_size": strategy.cell_size,
                "row": row,
                "col": col,
                "members": len(members),
                "visible_members": sum(1 for m in members if m.desired_visible()),
                "lat": lat,
                "lon": lon,
                "displayed": cluster.handle.visible,
            }
        )
    return rows


def run(markers_path: str, zooms: List[float], settings: ClusteringSettings, *, progress: bool = True) -> pd.DataFrame:
    markers = load_markers(markers_path)
    provider = InMemoryMap(zoom=zooms[0])
    strategy = create_strategy(provider, (), settings)
    for m in tqdm(markers, desc="Adding markers", unit="marker", disable=not progress):
        strategy.on_add(m)

    rows: List[Dict[str, Any]] = []
    for zoom in zooms:
        strategy.on_zoom_change(zoom)
        rows.extend(summarize(strategy, markers, zoom))
    strategy.teardown()
    return pd.DataFrame(rows, columns=OUTPUT_COLUMNS)


def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Cluster map markers from a CSV file on a zoom-dependent grid")
    parser.add_argument("markers", help="CSV file with lat and lon columns")
    parser.add_argument("--zoom", type=float, action="append", required=True, help="zoom level; repeat for several")
    parser.add_argument("--config", default=None, help="JSON or YAML clustering settings")
    parser.add_argument("--output", default=None, help="write the cluster table here instead of stdout")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(message)s")

    config_path = args.config or default_settings_path()
    settings = load_settings(config_path) if config_path else ClusteringSettings()
    df = run(args.markers, args.zoom, settings, progress=args.verbose)
    if args.output:
        df.to_csv(args.output, index=False)
        logger.info("Wrote %d rows to %s", len(df), args.output)
    else:
        df.to_csv(sys.stdout, index=False)


if __name__ == "__main__":
    main()
