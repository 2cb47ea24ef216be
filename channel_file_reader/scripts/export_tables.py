"""
Flat table views of a decoded channel file.

Each list section becomes one pandas DataFrame, one row per record:

- calibrations, calibration_entries (with calibration_index)
- rolled_joints (one row per joint, absent joints have present=False)
- rescan_elements, bscan_elements, reportable_elements
- indications, extended_indications (with indication_id)
- depth_profiles (profile in {"raw", "cpc", "apc"}), dfp_measurements
- rescan_records, bscan_records, scan_file_records

String fields are decoded with the given encoding; id lists and per-channel
byte arrays are rendered as space separated integers.

Examples
--------
>>> from channel_file_reader.ingest.reader_channel import read_channel_file
>>> from channel_file_reader.scripts.export_tables import section_frames
>>> frames = section_frames(read_channel_file("P12-A03.cf"))   # doctest: +SKIP
>>> frames["indications"][["id", "axial_centre", "maximum_depth_in_us"]]   # doctest: +SKIP
"""

from __future__ import annotations

from dataclasses import fields
from pathlib import Path
from typing import Any, Dict, Iterable, List, Literal, Optional, Sequence

import numpy as np
import pandas as pd

from channel_file_reader.models.records import (
    BscanElement,
    BscanRecord,
    Calibration,
    CalibrationEntry,
    ChannelFile,
    DepthProfileElement,
    DfpWallThicknessMeasurement,
    ExtendedIndication,
    Indication,
    OverridableLocation,
    ReportableElement,
    RescanElement,
    RescanRecord,
    RolledJoint,
    ScanFileRecord,
)


ExportFormat = Literal["csv", "parquet"]

_JOINT_LOCATIONS = ("axial_start", "axial_end", "burnish_mark", "end_of_pressure_tube", "taper")
_PROFILES = (
    ("raw", "depth_profile_elements"),
    ("cpc", "cpc_depth_profile_elements"),
    ("apc", "apc_depth_profile_elements"),
)


def _cell(value: Any, encoding: str) -> Any:
    if isinstance(value, bytes):
        return value.decode(encoding, errors="replace")
    if isinstance(value, tuple):
        return " ".join(str(v) for v in value)
    return value


def _columns(cls: type, exclude: Sequence[str] = ()) -> List[str]:
    return [f.name for f in fields(cls) if f.name not in exclude]


def _frame(
    records: Iterable[Any],
    cls: type,
    encoding: str,
    *,
    exclude: Sequence[str] = (),
    keys: Optional[Sequence[str]] = None,
    key_values: Optional[Iterable[Dict[str, Any]]] = None,
) -> pd.DataFrame:
    """Rows of ``cls`` records, optionally prefixed with parent key columns."""
    cols = _columns(cls, exclude)
    key_cols = list(keys or ())
    records = list(records)
    prefixes = list(key_values) if key_values is not None else [{} for _ in records]
    rows = []
    for prefix, rec in zip(prefixes, records):
        row = dict(prefix)
        for c in cols:
            row[c] = _cell(getattr(rec, c), encoding)
        rows.append(row)
    return pd.DataFrame(rows, columns=key_cols + cols)


def _location_cells(prefix: str, loc: OverridableLocation) -> Dict[str, Any]:
    value = loc.value
    return {
        f"{prefix}_detected": loc.detected,
        f"{prefix}_detected_value": loc.detected_value,
        f"{prefix}_overridden": loc.overridden,
        f"{prefix}_manual_value": loc.manual_value,
        f"{prefix}_value": np.nan if value is None else value,
    }


def _rolled_joints_frame(doc: ChannelFile) -> pd.DataFrame:
    names = list(_JOINT_LOCATIONS) + [f"roll_{i + 1}" for i in range(3)]
    cols = ["joint", "present"]
    for n in names:
        cols += [f"{n}_detected", f"{n}_detected_value", f"{n}_overridden", f"{n}_manual_value", f"{n}_value"]
    cols.append("end")

    rows = []
    for joint_name in ("inlet", "outlet"):
        joint: Optional[RolledJoint] = getattr(doc.rolled_joints, joint_name)
        row: Dict[str, Any] = {"joint": joint_name, "present": joint is not None}
        if joint is not None:
            for n in _JOINT_LOCATIONS:
                row.update(_location_cells(n, getattr(joint, n)))
            for i, roll in enumerate(joint.rolls):
                row.update(_location_cells(f"roll_{i + 1}", roll))
            row["end"] = joint.end
        rows.append(row)
    return pd.DataFrame(rows, columns=cols)


def section_frames(doc: ChannelFile, *, encoding: str = "latin-1") -> Dict[str, pd.DataFrame]:
    """Build one DataFrame per list section (see module docstring)."""
    out: Dict[str, pd.DataFrame] = {}

    out["calibrations"] = _frame(
        doc.calibrations,
        Calibration,
        encoding,
        exclude=("entries",),
        keys=("calibration_index", "n_entries"),
        key_values=[{"calibration_index": i, "n_entries": len(c.entries)} for i, c in enumerate(doc.calibrations)],
    )
    entries = [(i, j, e) for i, cal in enumerate(doc.calibrations) for j, e in enumerate(cal.entries)]
    out["calibration_entries"] = _frame(
        [e for _, _, e in entries],
        CalibrationEntry,
        encoding,
        keys=("calibration_index", "entry_index"),
        key_values=[{"calibration_index": i, "entry_index": j} for i, j, _ in entries],
    )

    out["rolled_joints"] = _rolled_joints_frame(doc)

    out["rescan_elements"] = _frame(doc.rescan_elements, RescanElement, encoding)
    out["bscan_elements"] = _frame(doc.bscan_elements, BscanElement, encoding)
    out["reportable_elements"] = _frame(doc.reportable_elements, ReportableElement, encoding)

    out["indications"] = _frame(
        doc.indications,
        Indication,
        encoding,
        exclude=("extended",),
        keys=("has_extended",),
        key_values=[{"has_extended": ind.extended is not None} for ind in doc.indications],
    )

    extended = [(ind.id, ind.extended) for ind in doc.indications if ind.extended is not None]
    out["extended_indications"] = _frame(
        [ext for _, ext in extended],
        ExtendedIndication,
        encoding,
        exclude=tuple(attr for _, attr in _PROFILES) + ("dfp",),
        keys=("indication_id", "has_dfp"),
        key_values=[{"indication_id": ind_id, "has_dfp": ext.dfp is not None} for ind_id, ext in extended],
    )

    profile_rows = [
        ({"indication_id": ind_id, "profile": label, "index": k}, el)
        for ind_id, ext in extended
        for label, attr in _PROFILES
        for k, el in enumerate(getattr(ext, attr))
    ]
    out["depth_profiles"] = _frame(
        [el for _, el in profile_rows],
        DepthProfileElement,
        encoding,
        keys=("indication_id", "profile", "index"),
        key_values=[k for k, _ in profile_rows],
    )

    dfp_rows = [
        ({"indication_id": ind_id, "index": k}, m)
        for ind_id, ext in extended
        if ext.dfp is not None
        for k, m in enumerate(ext.dfp.wall_thickness_measurements)
    ]
    out["dfp_measurements"] = _frame(
        [m for _, m in dfp_rows],
        DfpWallThicknessMeasurement,
        encoding,
        keys=("indication_id", "index"),
        key_values=[k for k, _ in dfp_rows],
    )

    out["rescan_records"] = _frame(doc.rescan_records, RescanRecord, encoding)
    out["bscan_records"] = _frame(doc.bscan_records, BscanRecord, encoding)
    out["scan_file_records"] = _frame(doc.scan_file_records, ScanFileRecord, encoding)
    return out


def export_dataframe(df: pd.DataFrame, path: Path, fmt: ExportFormat) -> None:
    """
    Export a DataFrame to CSV or Parquet.

    Parquet requires `pyarrow` (recommended) or `fastparquet`.
    """
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)

    if fmt == "csv":
        df.to_csv(out, index=False)
        return

    if fmt == "parquet":
        try:
            df.to_parquet(out, index=False)
        except Exception as e:
            raise RuntimeError(
                "Parquet export failed. Install 'pyarrow' (recommended) or 'fastparquet'. "
                f"Original error: {e}"
            ) from e
        return

    raise ValueError(f"Unknown export format: {fmt}")


def export_tables(
    doc: ChannelFile,
    out_dir: str | Path,
    *,
    fmt: ExportFormat = "csv",
    encoding: str = "latin-1",
) -> Dict[str, Path]:
    """Write every section table to ``<out_dir>/<section>.<fmt>``; returns the paths by section."""
    out = Path(out_dir)
    out.mkdir(parents=True, exist_ok=True)
    written: Dict[str, Path] = {}
    for name, df in section_frames(doc, encoding=encoding).items():
        path = out / f"{name}.{fmt}"
        export_dataframe(df, path, fmt)
        written[name] = path
    return written
