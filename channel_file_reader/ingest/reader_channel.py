from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Callable, List, Optional, Tuple, TypeVar, Union

from channel_file_reader.ingest.cursor import ByteCursor, BytesLike
from channel_file_reader.ingest.errors import (
    ImplausibleCount,
    InvalidFormat,
    StructuralAmbiguity,
    UnexpectedEndOfInput,
)
from channel_file_reader.models.records import (
    BscanElement,
    BscanRecord,
    Calibration,
    CalibrationEntry,
    ChannelFile,
    DepthProfileElement,
    Dfp,
    DfpWallThicknessMeasurement,
    ExtendedIndication,
    Header,
    Indication,
    OverridableLocation,
    ReportableElement,
    RescanElement,
    RescanRecord,
    RolledJoint,
    RolledJoints,
    ScanFileRecord,
)


log = logging.getLogger(__name__)

T = TypeVar("T")
Source = Union[str, Path, BytesLike, BinaryIO]

MAGIC = b"CF"
EXTENDED_INDICATION_TAG = b"EI"
DFP_TAG = b"DFP"
CALIBRATION_CHANNELS = 14
ROLLS_PER_JOINT = 3


@dataclass(frozen=True)
class ChannelFileReaderConfig:
    """
    Reader configuration for channel files.

    dfp_rewind:
      - False (default): on a DFP marker mismatch the 3 peeked bytes are consumed
        anyway, exactly like the instrument's own reader. Existing files were
        written under that convention, so this is what parses them.
        Each occurrence is recorded in ChannelFile.warnings.
      - True: leave the cursor in place on a mismatch (remediated reading).
        Each occurrence is recorded in ChannelFile.warnings as a divergence.
    strict_markers:
      Raise StructuralAmbiguity on a DFP marker mismatch instead of warning.
    max_list_count:
      Reject any count-prefixed list longer than this (None: only the
      remaining-bytes bound applies).
    text_encoding:
      Used by serializers to render string fields; decoding keeps raw bytes.
    """
    dfp_rewind: bool = False
    strict_markers: bool = False
    max_list_count: Optional[int] = None
    text_encoding: str = "latin-1"


class ChannelFileDecoder:
    """
    Record decoders for one stream.

    Every method consumes exactly the bytes of its record, in file order, and
    returns the record. There is no field skipping or defaulting: the method
    bodies ARE the file schema.
    """

    def __init__(self, cursor: ByteCursor, config: Optional[ChannelFileReaderConfig] = None):
        self.cursor = cursor
        self.config = config or ChannelFileReaderConfig()
        self.warnings: List[str] = []

    # -------------------------
    # List/repeat decoder
    # -------------------------
    def _list(self, name: str, read_one: Callable[[], T], what: str) -> Tuple[T, ...]:
        c = self.cursor
        with c.section(name):
            count = c.read_long("count")
            self._check_count(count, what)
            log.debug("Reading %d %s...", count, what)
            items: List[T] = []
            for i in range(count):
                with c.section(f"[{i}]"):
                    items.append(read_one())
        return tuple(items)

    def _ids(self, name: str) -> Tuple[int, ...]:
        c = self.cursor
        with c.section(name):
            count = c.read_long("count")
            self._check_count(count, "ids")
            log.debug("Reading %d ids...", count)
            return c.read_longs(count, "ids")

    def _check_count(self, count: int, what: str) -> None:
        c = self.cursor
        cap = self.config.max_list_count
        if cap is not None and count > cap:
            raise ImplausibleCount(
                f"{count} {what} exceeds max_list_count={cap}",
                offset=c.tell() - 4,
                section=c.path,
            )
        # every element consumes at least one byte
        if count > c.remaining:
            raise UnexpectedEndOfInput(
                f"unexpected end of input: list of {count} {what} cannot fit in {c.remaining} byte(s) left",
                offset=c.tell(),
                section=c.path,
                needed=count,
                available=c.remaining,
            )

    # -------------------------
    # Header / calibration
    # -------------------------
    def magic(self) -> None:
        c = self.cursor
        if c.remaining < len(MAGIC) or c.peek(len(MAGIC)) != MAGIC:
            found = c.peek(min(len(MAGIC), c.remaining))
            raise InvalidFormat(f"Not a channel file (marker {found!r}, expected {MAGIC!r})", offset=0, section="marker")
        c.skip(len(MAGIC))

    def header(self) -> Header:
        c = self.cursor
        log.debug("Reading header...")
        with c.section("header"):
            return Header(
                generating_station=c.read_byte("generating_station"),
                unit_number=c.read_byte("unit_number"),
                year=c.read_byte("year"),
                month=c.read_byte("month"),
                day=c.read_byte("day"),
                channel_abscissa=c.read_byte("channel_abscissa"),
                channel_ordinate=c.read_byte("channel_ordinate"),
                channel_end=c.read_byte("channel_end"),
                reactor_face=c.read_byte("reactor_face"),
                inspection_head=c.read_string("inspection_head"),
                operator_name=c.read_string("operator_name"),
                date=c.read_string("date"),
                time=c.read_string("time"),
            )

    def calibration_entry(self) -> CalibrationEntry:
        c = self.cursor
        n = CALIBRATION_CHANNELS
        return CalibrationEntry(
            state=c.read_long("state"),
            filename=c.read_string("filename"),
            levels=c.read_bytes(n, "levels"),
            raw_levels=c.read_bytes(n, "raw_levels"),
            hardware_gains=c.read_bytes(n, "hardware_gains"),
            software_gains=c.read_bytes(n, "software_gains"),
            description=c.read_string("description"),
        )

    def calibration(self) -> Calibration:
        c = self.cursor
        return Calibration(
            state=c.read_long("state"),
            start_time=c.read_long("start_time"),
            inspection_head=c.read_string("inspection_head"),
            entries=self._list("entries", self.calibration_entry, "calibration entries"),
            pv_calibration_filename=c.read_string("pv_calibration_filename"),
        )

    def calibrations(self) -> Tuple[Calibration, ...]:
        return self._list("calibrations", self.calibration, "calibration records")

    # -------------------------
    # Rolled joints
    # -------------------------
    def overridable_location(self, name: str) -> OverridableLocation:
        c = self.cursor
        with c.section(name):
            return OverridableLocation(
                detected=c.read_bool("detected"),
                detected_value=c.read_float("detected_value"),
                overridden=c.read_bool("overridden"),
                manual_value=c.read_float("manual_value"),
            )

    def rolled_joint(self, name: str) -> Optional[RolledJoint]:
        """Leading bool: False means the joint is absent and nothing else is read."""
        c = self.cursor
        with c.section(name):
            if not c.read_bool("present"):
                log.debug("Rolled joint '%s' absent", name)
                return None
            log.debug("Reading rolled joint '%s'...", name)
            return RolledJoint(
                axial_start=self.overridable_location("axial_start"),
                axial_end=self.overridable_location("axial_end"),
                burnish_mark=self.overridable_location("burnish_mark"),
                rolls=tuple(self.overridable_location(f"rolls[{i}]") for i in range(ROLLS_PER_JOINT)),
                end_of_pressure_tube=self.overridable_location("end_of_pressure_tube"),
                taper=self.overridable_location("taper"),
                end=c.read_long("end"),
            )

    def rolled_joints(self) -> RolledJoints:
        with self.cursor.section("rolled_joints"):
            return RolledJoints(inlet=self.rolled_joint("inlet"), outlet=self.rolled_joint("outlet"))

    # -------------------------
    # Analysis elements
    # -------------------------
    def _analysis_fields(self) -> dict:
        c = self.cursor
        return dict(
            id=c.read_long("id"),
            axial_start=c.read_float("axial_start"),
            axial_end=c.read_float("axial_end"),
            rotary_start=c.read_float("rotary_start"),
            rotary_end=c.read_float("rotary_end"),
            channel=c.read_long("channel"),
            description=c.read_string("description"),
            calibration_id=c.read_long("calibration_id"),
            enabled=c.read_bool("enabled"),
            redundant_master=c.read_long("redundant_master"),
            disable_reason=c.read_string("disable_reason"),
            accepted=c.read_bool("accepted"),
            custom=c.read_bool("custom"),
        )

    def rescan_element(self) -> RescanElement:
        base = self._analysis_fields()
        c = self.cursor
        return RescanElement(**base, type=c.read_long("type"), resolved=c.read_bool("resolved"))

    def bscan_element(self) -> BscanElement:
        base = self._analysis_fields()
        return BscanElement(**base, mandatory=self.cursor.read_bool("mandatory"))

    def reportable_element(self) -> ReportableElement:
        return ReportableElement(**self._analysis_fields())

    # -------------------------
    # Indications
    # -------------------------
    def depth_profile_element(self) -> DepthProfileElement:
        c = self.cursor
        return DepthProfileElement(
            axial=c.read_float("axial"),
            rotary=c.read_float("rotary"),
            max_depth=c.read_float("max_depth"),
        )

    def dfp_wall_thickness_measurement(self) -> DfpWallThicknessMeasurement:
        c = self.cursor
        return DfpWallThicknessMeasurement(
            axial=c.read_float("axial"),
            rotary=c.read_float("rotary"),
            wall_thickness_in_us=c.read_float("wall_thickness_in_us"),
            us_to_mm_conversion=c.read_float("us_to_mm_conversion"),
            us_to_mm_conversion_description=c.read_string("us_to_mm_conversion_description"),
        )

    def dfp(self) -> Optional[Dfp]:
        """
        3-byte "DFP" marker block.

        On a mismatch the instrument's reader keeps the 3 bytes consumed (it
        never seeks back). That skip is reproduced unless config.dfp_rewind.
        """
        c = self.cursor
        cfg = self.config
        with c.section("dfp"):
            start = c.tell()
            marker = c.peek(len(DFP_TAG), "marker")
            if marker == DFP_TAG:
                c.skip(len(DFP_TAG), "marker")
                return Dfp(
                    wall_thickness_measurements=self._list(
                        "wall_thickness_measurements",
                        self.dfp_wall_thickness_measurement,
                        "dfp wall thickness measurements",
                    ),
                )

            # The instrument reader only checks the first two bytes ("DF?" passes).
            note = ""
            if marker[:2] == DFP_TAG[:2]:
                note = "; the instrument reader accepts any 'DF?' marker and would have decoded a DFP block here"
            if cfg.strict_markers:
                raise StructuralAmbiguity(
                    f"DFP marker mismatch (found {marker!r}); stream alignment after this point is ambiguous{note}",
                    offset=start,
                    section=c.path,
                )
            if cfg.dfp_rewind:
                self.warnings.append(
                    f"DFP marker mismatch at offset {start} ({c.path}): found {marker!r}; "
                    f"cursor left in place (dfp_rewind=True diverges from the instrument reader){note}"
                )
            else:
                c.skip(len(DFP_TAG), "marker")
                self.warnings.append(
                    f"StructuralAmbiguity: DFP marker mismatch at offset {start} ({c.path}): "
                    f"found {marker!r}; skipped {len(DFP_TAG)} bytes like the instrument reader{note}"
                )
            log.debug("No DFP marker at offset %d", start)
            return None

    def extended_indication(self) -> Optional[ExtendedIndication]:
        """
        2-byte "EI" marker block.

        On a mismatch nothing is consumed: the next indication field starts at
        the peeked bytes.
        """
        c = self.cursor
        with c.section("extended"):
            if c.peek(len(EXTENDED_INDICATION_TAG), "marker") != EXTENDED_INDICATION_TAG:
                log.debug("No extended indication marker at offset %d", c.tell())
                return None
            c.skip(len(EXTENDED_INDICATION_TAG), "marker")
            log.debug("Reading extended indication fields...")
            return ExtendedIndication(
                maximum_cw_amplitude=c.read_float("maximum_cw_amplitude"),
                maximum_ccw_amplitude=c.read_float("maximum_ccw_amplitude"),
                maximum_fwd_amplitude=c.read_float("maximum_fwd_amplitude"),
                maximum_back_amplitude=c.read_float("maximum_back_amplitude"),
                scan_sensitivity_relative_to_notch=c.read_float("scan_sensitivity_relative_to_notch"),
                maximum_amplitude_screen_height=c.read_byte("maximum_amplitude_screen_height"),
                maximum_cw_amplitude_screen_height=c.read_byte("maximum_cw_amplitude_screen_height"),
                maximum_ccw_amplitude_screen_height=c.read_byte("maximum_ccw_amplitude_screen_height"),
                maximum_fwd_amplitude_screen_height=c.read_byte("maximum_fwd_amplitude_screen_height"),
                maximum_back_amplitude_screen_height=c.read_byte("maximum_back_amplitude_screen_height"),
                nb_second_backwall_background_level_screen_height=c.read_byte(
                    "nb_second_backwall_background_level_screen_height"
                ),
                nb_flaw_max_drop_screen_height=c.read_byte("nb_flaw_max_drop_screen_height"),
                flaw_6db_drop_level_screen_height=c.read_byte("flaw_6db_drop_level_screen_height"),
                nb_flaw_max_drop_relative_to_background_level=c.read_float(
                    "nb_flaw_max_drop_relative_to_background_level"
                ),
                flaw_6db_drop_relative_to_background_level=c.read_float("flaw_6db_drop_relative_to_background_level"),
                max_cpc_depth_in_us=c.read_float("max_cpc_depth_in_us"),
                max_cpc_depth_us_to_mm_conversion=c.read_float("max_cpc_depth_us_to_mm_conversion"),
                max_cpc_depth_axial_location=c.read_float("max_cpc_depth_axial_location"),
                max_cpc_depth_rotary_location=c.read_float("max_cpc_depth_rotary_location"),
                max_apc_depth_in_us=c.read_float("max_apc_depth_in_us"),
                max_apc_depth_us_to_mm_conversion=c.read_float("max_apc_depth_us_to_mm_conversion"),
                max_apc_depth_axial_location=c.read_float("max_apc_depth_axial_location"),
                max_apc_depth_rotary_location=c.read_float("max_apc_depth_rotary_location"),
                sizing_automatic=c.read_bool("sizing_automatic"),
                maximum_amplitude_automatic=c.read_bool("maximum_amplitude_automatic"),
                maximum_depth_automatic=c.read_bool("maximum_depth_automatic"),
                wall_thickness_automatic=c.read_bool("wall_thickness_automatic"),
                depth_profile_automatic=c.read_bool("depth_profile_automatic"),
                cpc_depth_profile_automatic=c.read_bool("cpc_depth_profile_automatic"),
                apc_depth_profile_automatic=c.read_bool("apc_depth_profile_automatic"),
                depth_profile_elements=self._list(
                    "depth_profile_elements", self.depth_profile_element, "depth profile elements"
                ),
                cpc_depth_profile_elements=self._list(
                    "cpc_depth_profile_elements", self.depth_profile_element, "cpc depth profile elements"
                ),
                apc_depth_profile_elements=self._list(
                    "apc_depth_profile_elements", self.depth_profile_element, "apc depth profile elements"
                ),
                indication_label=c.read_string("indication_label"),
                analyst_id=c.read_long("analyst_id"),
                manually_created=c.read_bool("manually_created"),
                depth_was_from_20mhz=c.read_bool("depth_was_from_20mhz"),
                dfp=self.dfp(),
            )

    def indication(self) -> Indication:
        c = self.cursor
        return Indication(
            id=c.read_long("id"),
            axial_centre=c.read_float("axial_centre"),
            rotary_centre=c.read_float("rotary_centre"),
            width=c.read_float("width"),
            length=c.read_float("length"),
            angle=c.read_float("angle"),
            tube_radius=c.read_float("tube_radius"),
            maximum_amplitude=c.read_float("maximum_amplitude"),
            maximum_depth_in_us=c.read_float("maximum_depth_in_us"),
            maximum_depth_us_to_mm_conversion=c.read_float("maximum_depth_us_to_mm_conversion"),
            maximum_depth_axial_location=c.read_float("maximum_depth_axial_location"),
            maximum_depth_rotary_location=c.read_float("maximum_depth_rotary_location"),
            wall_thickness_in_us=c.read_float("wall_thickness_in_us"),
            wall_thickness_us_to_mm_conversion=c.read_float("wall_thickness_us_to_mm_conversion"),
            maximum_depth_us_to_mm_conversion_description=c.read_string(
                "maximum_depth_us_to_mm_conversion_description"
            ),
            wall_thickness_us_to_mm_conversion_description=c.read_string(
                "wall_thickness_us_to_mm_conversion_description"
            ),
            comments=c.read_string("comments"),
            type=c.read_long("type"),
            location=c.read_long("location"),
            reportable_element_ids=self._ids("reportable_element_ids"),
            bscan_element_ids=self._ids("bscan_element_ids"),
            extended=self.extended_indication(),
        )

    # -------------------------
    # Scan records
    # -------------------------
    def rescan_record(self) -> RescanRecord:
        c = self.cursor
        return RescanRecord(
            id=c.read_long("id"),
            axial_start=c.read_float("axial_start"),
            axial_end=c.read_float("axial_end"),
            flags=c.read_long("flags"),
            completed=c.read_bool("completed"),
            calibration_id=c.read_long("calibration_id"),
            elements=self._ids("elements"),
        )

    def bscan_record(self) -> BscanRecord:
        c = self.cursor
        return BscanRecord(
            id=c.read_long("id"),
            axial_start=c.read_float("axial_start"),
            axial_end=c.read_float("axial_end"),
            rotary_start=c.read_float("rotary_start"),
            rotary_end=c.read_float("rotary_end"),
            completed=c.read_bool("completed"),
            mandatory_region=c.read_bool("mandatory_region"),
            calibration_id=c.read_long("calibration_id"),
            elements=self._ids("elements"),
        )

    def scan_file_record(self) -> ScanFileRecord:
        c = self.cursor
        return ScanFileRecord(
            filename=c.read_string("filename"),
            rescan_record_ids=self._ids("rescan_record_ids"),
            bscan_record_ids=self._ids("bscan_record_ids"),
            reportable_element_ids=self._ids("reportable_element_ids"),
        )

    # -------------------------
    # Top-level list sections
    # -------------------------
    def rescan_elements(self) -> Tuple[RescanElement, ...]:
        return self._list("rescan_elements", self.rescan_element, "rescan elements")

    def bscan_elements(self) -> Tuple[BscanElement, ...]:
        return self._list("bscan_elements", self.bscan_element, "bscan elements")

    def reportable_elements(self) -> Tuple[ReportableElement, ...]:
        return self._list("reportable_elements", self.reportable_element, "reportable elements")

    def indications(self) -> Tuple[Indication, ...]:
        return self._list("indications", self.indication, "indications")

    def rescan_records(self) -> Tuple[RescanRecord, ...]:
        return self._list("rescan_records", self.rescan_record, "rescan records")

    def bscan_records(self) -> Tuple[BscanRecord, ...]:
        return self._list("bscan_records", self.bscan_record, "bscan records")

    def scan_file_records(self) -> Tuple[ScanFileRecord, ...]:
        return self._list("scan_file_records", self.scan_file_record, "scan file records")


class ChannelFileReader:
    """
    Reader for inspection channel files (*.cf style binaries starting with "CF").

    Layout (little-endian):
      "CF", header, calibrations, rolled joints (inlet, outlet), rescan elements,
      bscan elements, reportable elements, indications, rescan records,
      bscan records, scan file records.

    HARD REQUIREMENTS:
      - one forward pass; the first failure aborts the whole read
        (no partial ChannelFile is ever returned)
      - every error carries the byte offset and section path where it happened
    """

    def __init__(self, config: Optional[ChannelFileReaderConfig] = None):
        self.config = config or ChannelFileReaderConfig()

    def read(self, source: Source) -> ChannelFile:
        path, data = self._load(source)
        dec = ChannelFileDecoder(ByteCursor(data), self.config)
        c = dec.cursor

        dec.magic()
        header = dec.header()
        calibrations = dec.calibrations()
        rolled_joints = dec.rolled_joints()
        rescan_elements = dec.rescan_elements()
        bscan_elements = dec.bscan_elements()
        reportable_elements = dec.reportable_elements()
        indications = dec.indications()
        rescan_records = dec.rescan_records()
        bscan_records = dec.bscan_records()
        scan_file_records = dec.scan_file_records()

        warnings = list(dec.warnings)
        if c.remaining:
            warnings.append(f"{c.remaining} trailing byte(s) after scan_file_records at offset {c.tell()} were not decoded")

        return ChannelFile(
            header=header,
            calibrations=calibrations,
            rolled_joints=rolled_joints,
            rescan_elements=rescan_elements,
            bscan_elements=bscan_elements,
            reportable_elements=reportable_elements,
            indications=indications,
            rescan_records=rescan_records,
            bscan_records=bscan_records,
            scan_file_records=scan_file_records,
            source_path=path,
            size_bytes=c.size,
            bytes_consumed=c.tell(),
            warnings=tuple(warnings),
        )

    @staticmethod
    def _load(source: Source) -> Tuple[Optional[Path], bytes]:
        if isinstance(source, (bytes, bytearray, memoryview)):
            return None, bytes(source)
        if hasattr(source, "read"):
            data = source.read()
            if not isinstance(data, (bytes, bytearray, memoryview)):
                raise TypeError(
                    f"binary stream required (read() returned {type(data).__name__}); open the file with mode 'rb'"
                )
            return None, bytes(data)
        path = Path(source).expanduser().resolve()
        if not path.exists():
            raise FileNotFoundError(str(path))
        return path, path.read_bytes()


def read_channel_file(source: Source, config: Optional[ChannelFileReaderConfig] = None) -> ChannelFile:
    """Decode one channel file (path, bytes or binary stream)."""
    return ChannelFileReader(config).read(source)
