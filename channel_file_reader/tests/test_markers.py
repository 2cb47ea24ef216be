"""Marker-guarded optional blocks ("EI" on indications, "DFP" on extended indications).

Covers:
- EI mismatch leaves the cursor where it was
- DFP mismatch consumes the 3 marker bytes (instrument reader behaviour) and warns
- dfp_rewind=True leaves the cursor in place and flags the divergence
- strict_markers=True turns a DFP mismatch into StructuralAmbiguity
"""

from __future__ import annotations

import pytest

from cf_builder import Writer, dfp_block, extended_indication
from channel_file_reader.ingest.cursor import ByteCursor
from channel_file_reader.ingest.errors import StructuralAmbiguity, UnexpectedEndOfInput
from channel_file_reader.ingest.reader_channel import ChannelFileDecoder, ChannelFileReaderConfig


def _decoder(data: bytes, **cfg) -> ChannelFileDecoder:
    return ChannelFileDecoder(ByteCursor(data), ChannelFileReaderConfig(**cfg))


# -----------------------------------------------------------------------
# EI
# -----------------------------------------------------------------------


def test_extended_indication_absent_does_not_consume() -> None:
    dec = _decoder(b"XY\x00\x00")
    assert dec.extended_indication() is None
    assert dec.cursor.tell() == 0
    assert dec.warnings == []


def test_extended_indication_absent_next_field_reads_peeked_bytes() -> None:
    dec = _decoder(b"FI\x00\x00")
    assert dec.extended_indication() is None
    assert dec.cursor.read_long() == 0x00004946


def test_extended_indication_present() -> None:
    w = extended_indication(Writer(), profiles=(2, 0, 3), dfp_n=2)
    data = w.data
    dec = _decoder(data + b"rest")
    ext = dec.extended_indication()

    assert ext is not None
    assert ext.maximum_cw_amplitude == 1.0
    assert ext.scan_sensitivity_relative_to_notch == -6.0
    assert ext.maximum_amplitude_screen_height == 80
    assert ext.flaw_6db_drop_level_screen_height == 87
    assert ext.max_apc_depth_rotary_location == 4.5
    assert ext.sizing_automatic is True
    assert ext.maximum_amplitude_automatic is False
    assert len(ext.depth_profile_elements) == 2
    assert ext.cpc_depth_profile_elements == ()
    assert len(ext.apc_depth_profile_elements) == 3
    assert ext.apc_depth_profile_elements[2].axial == 2.0
    assert ext.indication_label == b"IND-1"
    assert ext.analyst_id == 42
    assert ext.depth_was_from_20mhz is True
    assert ext.dfp is not None
    assert [m.axial for m in ext.dfp.wall_thickness_measurements] == [100.0, 101.0]
    assert ext.dfp.wall_thickness_measurements[0].us_to_mm_conversion_description == b"us->mm"
    assert dec.cursor.tell() == len(data)


def test_extended_marker_at_end_of_input() -> None:
    dec = _decoder(b"E")
    with pytest.raises(UnexpectedEndOfInput) as exc:
        dec.extended_indication()
    assert exc.value.section == "extended.marker"


# -----------------------------------------------------------------------
# DFP
# -----------------------------------------------------------------------


def test_dfp_mismatch_consumes_three_bytes() -> None:
    dec = _decoder(b"XYZ" + b"\x01\x02")
    assert dec.dfp() is None
    assert dec.cursor.tell() == 3
    assert len(dec.warnings) == 1
    assert dec.warnings[0].startswith("StructuralAmbiguity")
    assert "offset 0" in dec.warnings[0]


def test_dfp_mismatch_with_rewind_leaves_cursor() -> None:
    dec = _decoder(b"XYZ" + b"\x01\x02", dfp_rewind=True)
    assert dec.dfp() is None
    assert dec.cursor.tell() == 0
    assert len(dec.warnings) == 1
    assert "dfp_rewind=True" in dec.warnings[0]


@pytest.mark.parametrize("rewind", [False, True])
def test_dfp_mismatch_strict_raises(rewind: bool) -> None:
    dec = _decoder(b"DFX", strict_markers=True, dfp_rewind=rewind)
    with pytest.raises(StructuralAmbiguity) as exc:
        dec.dfp()
    assert exc.value.offset == 0
    assert exc.value.section == "dfp"


def test_dfp_present_decodes_measurements() -> None:
    data = dfp_block(Writer(), n=3).data
    dec = _decoder(data)
    dfp = dec.dfp()
    assert dfp is not None
    assert len(dfp.wall_thickness_measurements) == 3
    assert dfp.wall_thickness_measurements[1].axial == 101.0
    assert dfp.wall_thickness_measurements[1].wall_thickness_in_us == 2.5
    assert dec.cursor.remaining == 0
    assert dec.warnings == []


def test_dfp_present_empty_list() -> None:
    dec = _decoder(dfp_block(Writer(), n=0).data)
    dfp = dec.dfp()
    assert dfp is not None
    assert dfp.wall_thickness_measurements == ()


def test_dfp_marker_short_input() -> None:
    dec = _decoder(b"DF")
    with pytest.raises(UnexpectedEndOfInput) as exc:
        dec.dfp()
    assert exc.value.needed == 3
    assert exc.value.available == 2


def test_dfp_prefix_only_match_is_named_in_warning() -> None:
    dec = _decoder(b"DFx" + b"\x00")
    assert dec.dfp() is None
    assert dec.cursor.tell() == 3
    assert len(dec.warnings) == 1
    assert "found b'DFx'" in dec.warnings[0]
    assert "accepts any 'DF?' marker" in dec.warnings[0]


def test_dfp_unrelated_marker_has_no_prefix_note() -> None:
    dec = _decoder(b"XYZ")
    dec.dfp()
    assert "DF?" not in dec.warnings[0]


def test_dfp_prefix_only_match_strict_message() -> None:
    dec = _decoder(b"DFQ", strict_markers=True)
    with pytest.raises(StructuralAmbiguity, match="accepts any 'DF\\?' marker"):
        dec.dfp()
