"""Record types of a decoded channel file.

Every class below is a frozen dataclass whose field order is the order in which
the fields are stored in the file. Collections are tuples; string fields keep
the raw ``bytes`` found on disk (no encoding is guaranteed by the instrument).

Cross references (``bscan_element_ids``, ``elements``, ...) are plain integer
ids. The decoder never resolves them; :class:`ChannelFile` offers id lookups
for consumers.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple


def _plain(value: Any) -> Any:
    if isinstance(value, _Record):
        return value.to_dict()
    if isinstance(value, tuple):
        return [_plain(v) for v in value]
    return value


class _Record:
    """Mixin giving records a nested ``dict`` view in field order."""

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: _plain(getattr(self, f.name)) for f in fields(self)}


@dataclass(frozen=True)
class Header(_Record):
    generating_station: int
    unit_number: int
    year: int
    month: int
    day: int
    channel_abscissa: int
    channel_ordinate: int
    channel_end: int
    reactor_face: int
    inspection_head: bytes
    operator_name: bytes
    date: bytes
    time: bytes


@dataclass(frozen=True)
class CalibrationEntry(_Record):
    """
    One calibrated channel set.

    levels, raw_levels, hardware_gains, software_gains:
      exactly 14 unsigned byte values each (one per probe channel).
    """
    state: int
    filename: bytes
    levels: Tuple[int, ...]
    raw_levels: Tuple[int, ...]
    hardware_gains: Tuple[int, ...]
    software_gains: Tuple[int, ...]
    description: bytes


@dataclass(frozen=True)
class Calibration(_Record):
    state: int
    start_time: int
    inspection_head: bytes
    entries: Tuple[CalibrationEntry, ...]
    pv_calibration_filename: bytes


@dataclass(frozen=True)
class OverridableLocation(_Record):
    """
    A location computed by the instrument that an operator may override.

    The effective value is ``manual_value`` when ``overridden`` is set, else
    ``detected_value`` when ``detected`` is set, else nothing.
    """
    detected: bool
    detected_value: float
    overridden: bool
    manual_value: float

    @property
    def value(self) -> Optional[float]:
        if self.overridden:
            return self.manual_value
        if self.detected:
            return self.detected_value
        return None


@dataclass(frozen=True)
class RolledJoint(_Record):
    axial_start: OverridableLocation
    axial_end: OverridableLocation
    burnish_mark: OverridableLocation
    rolls: Tuple[OverridableLocation, OverridableLocation, OverridableLocation]
    end_of_pressure_tube: OverridableLocation
    taper: OverridableLocation
    end: int


@dataclass(frozen=True)
class RolledJoints(_Record):
    """Inlet and outlet joints; ``None`` means the joint is absent from the file."""
    inlet: Optional[RolledJoint]
    outlet: Optional[RolledJoint]


@dataclass(frozen=True)
class AnalysisElement(_Record):
    """Fields shared by rescan, bscan and reportable elements."""
    id: int
    axial_start: float
    axial_end: float
    rotary_start: float
    rotary_end: float
    channel: int
    description: bytes
    calibration_id: int
    enabled: bool
    redundant_master: int
    disable_reason: bytes
    accepted: bool
    custom: bool


@dataclass(frozen=True)
class RescanElement(AnalysisElement):
    type: int
    resolved: bool


@dataclass(frozen=True)
class BscanElement(AnalysisElement):
    mandatory: bool


@dataclass(frozen=True)
class ReportableElement(AnalysisElement):
    pass


@dataclass(frozen=True)
class DepthProfileElement(_Record):
    axial: float
    rotary: float
    max_depth: float


@dataclass(frozen=True)
class DfpWallThicknessMeasurement(_Record):
    axial: float
    rotary: float
    wall_thickness_in_us: float
    us_to_mm_conversion: float
    us_to_mm_conversion_description: bytes


@dataclass(frozen=True)
class Dfp(_Record):
    wall_thickness_measurements: Tuple[DfpWallThicknessMeasurement, ...]


@dataclass(frozen=True)
class ExtendedIndication(_Record):
    """
    Detailed amplitude/depth data attached to an indication ("EI" block).

    cpc / apc:
      cross-power-corrected and along-power-corrected depth variants.
    dfp:
      optional wall thickness profile ("DFP" block), ``None`` when absent.
    """
    maximum_cw_amplitude: float
    maximum_ccw_amplitude: float
    maximum_fwd_amplitude: float
    maximum_back_amplitude: float
    scan_sensitivity_relative_to_notch: float
    maximum_amplitude_screen_height: int
    maximum_cw_amplitude_screen_height: int
    maximum_ccw_amplitude_screen_height: int
    maximum_fwd_amplitude_screen_height: int
    maximum_back_amplitude_screen_height: int
    nb_second_backwall_background_level_screen_height: int
    nb_flaw_max_drop_screen_height: int
    flaw_6db_drop_level_screen_height: int
    nb_flaw_max_drop_relative_to_background_level: float
    flaw_6db_drop_relative_to_background_level: float
    max_cpc_depth_in_us: float
    max_cpc_depth_us_to_mm_conversion: float
    max_cpc_depth_axial_location: float
    max_cpc_depth_rotary_location: float
    max_apc_depth_in_us: float
    max_apc_depth_us_to_mm_conversion: float
    max_apc_depth_axial_location: float
    max_apc_depth_rotary_location: float
    sizing_automatic: bool
    maximum_amplitude_automatic: bool
    maximum_depth_automatic: bool
    wall_thickness_automatic: bool
    depth_profile_automatic: bool
    cpc_depth_profile_automatic: bool
    apc_depth_profile_automatic: bool
    depth_profile_elements: Tuple[DepthProfileElement, ...]
    cpc_depth_profile_elements: Tuple[DepthProfileElement, ...]
    apc_depth_profile_elements: Tuple[DepthProfileElement, ...]
    indication_label: bytes
    analyst_id: int
    manually_created: bool
    depth_was_from_20mhz: bool
    dfp: Optional[Dfp]


@dataclass(frozen=True)
class Indication(_Record):
    id: int
    axial_centre: float
    rotary_centre: float
    width: float
    length: float
    angle: float
    tube_radius: float
    maximum_amplitude: float
    maximum_depth_in_us: float
    maximum_depth_us_to_mm_conversion: float
    maximum_depth_axial_location: float
    maximum_depth_rotary_location: float
    wall_thickness_in_us: float
    wall_thickness_us_to_mm_conversion: float
    maximum_depth_us_to_mm_conversion_description: bytes
    wall_thickness_us_to_mm_conversion_description: bytes
    comments: bytes
    type: int
    location: int
    reportable_element_ids: Tuple[int, ...]
    bscan_element_ids: Tuple[int, ...]
    extended: Optional[ExtendedIndication]


@dataclass(frozen=True)
class RescanRecord(_Record):
    id: int
    axial_start: float
    axial_end: float
    flags: int
    completed: bool
    calibration_id: int
    elements: Tuple[int, ...]


@dataclass(frozen=True)
class BscanRecord(_Record):
    id: int
    axial_start: float
    axial_end: float
    rotary_start: float
    rotary_end: float
    completed: bool
    mandatory_region: bool
    calibration_id: int
    elements: Tuple[int, ...]


@dataclass(frozen=True)
class ScanFileRecord(_Record):
    filename: bytes
    rescan_record_ids: Tuple[int, ...]
    bscan_record_ids: Tuple[int, ...]
    reportable_element_ids: Tuple[int, ...]


# Sections of a ChannelFile in file order (after the "CF" marker).
SECTIONS: Tuple[str, ...] = (
    "header",
    "calibrations",
    "rolled_joints",
    "rescan_elements",
    "bscan_elements",
    "reportable_elements",
    "indications",
    "rescan_records",
    "bscan_records",
    "scan_file_records",
)


@dataclass(frozen=True)
class ChannelFile(_Record):
    """
    A fully decoded channel file.

    Notes
    - The section fields are exactly what the file holds, in file order.
    - source_path is None when the reader was given bytes or a stream.
    - bytes_consumed < size_bytes means the file has trailing data that no
      section claimed (reported in warnings).
    - warnings holds non-fatal reader diagnostics, e.g. DFP markers that did
      not match and were skipped.
    """
    header: Header
    calibrations: Tuple[Calibration, ...]
    rolled_joints: RolledJoints
    rescan_elements: Tuple[RescanElement, ...]
    bscan_elements: Tuple[BscanElement, ...]
    reportable_elements: Tuple[ReportableElement, ...]
    indications: Tuple[Indication, ...]
    rescan_records: Tuple[RescanRecord, ...]
    bscan_records: Tuple[BscanRecord, ...]
    scan_file_records: Tuple[ScanFileRecord, ...]

    source_path: Optional[Path] = None
    size_bytes: int = 0
    bytes_consumed: int = 0
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Nested dict of the decoded sections only (reader metadata excluded)."""
        return {name: _plain(getattr(self, name)) for name in SECTIONS}

    def summary(self) -> Dict[str, int]:
        """Number of records per list section, plus extended indications."""
        out: Dict[str, int] = {}
        for name in SECTIONS:
            value = getattr(self, name)
            if isinstance(value, tuple):
                out[name] = len(value)
        out["extended_indications"] = sum(1 for i in self.indications if i.extended is not None)
        return out

    # ------------------------------------------------------------------
    # Id lookups (consumer side; the reader never resolves references)
    # ------------------------------------------------------------------

    @staticmethod
    def _by_id(items: Tuple[Any, ...], ident: int, what: str) -> Any:
        for item in items:
            if item.id == ident:
                return item
        raise KeyError(f"No {what} with id={ident}.")

    def rescan_element(self, ident: int) -> RescanElement:
        return self._by_id(self.rescan_elements, ident, "rescan element")

    def bscan_element(self, ident: int) -> BscanElement:
        return self._by_id(self.bscan_elements, ident, "bscan element")

    def reportable_element(self, ident: int) -> ReportableElement:
        return self._by_id(self.reportable_elements, ident, "reportable element")

    def rescan_record(self, ident: int) -> RescanRecord:
        return self._by_id(self.rescan_records, ident, "rescan record")

    def bscan_record(self, ident: int) -> BscanRecord:
        return self._by_id(self.bscan_records, ident, "bscan record")
