from pathlib import Path

import pandas as pd

from .display import format_timestamp, snapshot_rows
from .outcomes import Snapshot
from .settings import ProbeConfig, resolve_path

COLUMNS = [
    "id", "label", "hostname",
    "http", "http_verdict", "http_status",
    "https", "https_verdict", "https_status",
]


def snapshot_frame(snapshot: Snapshot) -> pd.DataFrame:
    """
    Tabular view of a snapshot, one row per domain, with the snapshot
    timestamp repeated on every row.
    """
    df = pd.DataFrame(snapshot_rows(snapshot), columns=COLUMNS)
    df["http_status"] = df["http_status"].astype("Int64")
    df["https_status"] = df["https_status"].astype("Int64")
    df["checked_at"] = format_timestamp(snapshot)
    return df


def save_snapshot(snapshot: Snapshot, name: str = "latest", config: ProbeConfig | None = None) -> Path:
    """
    Persist the snapshot as CSV under <results_dir>/<name>.csv.

    The file is overwritten on every call; only the latest snapshot is kept.
    """
    df = snapshot_frame(snapshot)
    results_dir = resolve_path((config or ProbeConfig()).results_dir)
    results_dir.mkdir(parents=True, exist_ok=True)
    out_path = results_dir / f"{name}.csv"
    df.to_csv(out_path, index=False)
    return out_path
