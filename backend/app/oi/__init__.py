"""Open-interest history subsystem for the OI dashboard.

Public API:
    Snapshot, LegQuote   - Immutable option-chain snapshot models
    StrikeSelector       - ATM strike and symmetric strike window
    filter_window        - Date / relative-time filtering of history
    dedupe_unchanged     - Drop snapshots with no visible OI change
    compute_view         - Per-strike deltas and window totals for one snapshot
    ViewFilters          - User filters for one render/export pass
    build_views          - Full pipeline: filter, dedupe, diff
    build_export         - Flat export rows from the same pipeline
    SnapshotHistory      - Thread-safe in-memory history
    SnapshotSource       - Abstract interface for data providers
    create_snapshot_source - Factory that selects the HTTP API or the simulator
    create_oi_router     - FastAPI router factory for the OI endpoints
"""

from .cache import SnapshotHistory
from .config import Settings
from .dedup import dedupe_unchanged
from .diff import SnapshotView, compute_view
from .errors import InvalidConfigError
from .export import build_export, export_filename, export_rows, to_csv
from .factory import create_snapshot_source
from .interface import SnapshotSource
from .models import LegQuote, Snapshot, StrikeRecord
from .pipeline import ViewFilters, build_views
from .stream import create_oi_router
from .strikes import StrikeSelector, nearest_strike, strike_window
from .window import filter_window

__all__ = [
    "Snapshot",
    "LegQuote",
    "StrikeRecord",
    "StrikeSelector",
    "nearest_strike",
    "strike_window",
    "filter_window",
    "dedupe_unchanged",
    "compute_view",
    "SnapshotView",
    "ViewFilters",
    "build_views",
    "build_export",
    "export_rows",
    "export_filename",
    "to_csv",
    "InvalidConfigError",
    "Settings",
    "SnapshotHistory",
    "SnapshotSource",
    "create_snapshot_source",
    "create_oi_router",
]
