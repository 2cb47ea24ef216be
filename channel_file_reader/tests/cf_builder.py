"""Synthetic channel file bytes for tests (little-endian, same layout the reader expects)."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence

import numpy as np


class Writer:
    def __init__(self) -> None:
        self._parts: list[bytes] = []

    @property
    def data(self) -> bytes:
        return b"".join(self._parts)

    def __len__(self) -> int:
        return len(self.data)

    def raw(self, b: bytes) -> "Writer":
        self._parts.append(bytes(b))
        return self

    def u8(self, v: int) -> "Writer":
        return self.raw(np.array([v], dtype="u1").tobytes())

    def boolean(self, v: bool) -> "Writer":
        return self.u8(1 if v else 0)

    def u16(self, v: int) -> "Writer":
        return self.raw(np.array([v], dtype="<u2").tobytes())

    def u32(self, v: int) -> "Writer":
        return self.raw(np.array([v], dtype="<u4").tobytes())

    def f32(self, v: float) -> "Writer":
        return self.raw(np.array([v], dtype="<f4").tobytes())

    def string(self, b: bytes) -> "Writer":
        return self.u32(len(b)).raw(b)

    def ids(self, values: Sequence[int]) -> "Writer":
        self.u32(len(values))
        for v in values:
            self.u32(v)
        return self


def header(w: Writer, *, station: int = 0, head: bytes = b"", operator: bytes = b"",
           date: bytes = b"", time: bytes = b"") -> Writer:
    w.u8(station)
    for v in (2, 23, 5, 17, 12, 7, 1, 0):
        w.u8(v if station else 0)
    return w.string(head).string(operator).string(date).string(time)


def calibration_entry(w: Writer, *, state: int = 3) -> Writer:
    w.u32(state).string(b"CAL_0001.DAT")
    for base in (0, 20, 40, 60):
        for k in range(14):
            w.u8(base + k)
    return w.string(b"notch 10%")


def calibration(w: Writer, *, n_entries: int = 2) -> Writer:
    w.u32(1).u32(1_700_000_000).string(b"HEAD-7")
    w.u32(n_entries)
    for i in range(n_entries):
        calibration_entry(w, state=i)
    return w.string(b"PV.cal")


def location(w: Writer, *, detected: bool = True, value: float = 1.5,
             overridden: bool = False, manual: float = 0.0) -> Writer:
    return w.boolean(detected).f32(value).boolean(overridden).f32(manual)


def rolled_joint(w: Writer, *, present: bool = True, end: int = 99) -> Writer:
    w.boolean(present)
    if not present:
        return w
    for k in range(8):
        location(w, value=float(k) + 0.5, overridden=(k == 2), manual=-4.0)
    return w.u32(end)


def analysis_element(w: Writer, *, ident: int, description: bytes = b"zone", reason: bytes = b"",
                     axial_start: float = 10.0) -> Writer:
    w.u32(ident).f32(axial_start).f32(20.0).f32(0.0).f32(90.0)
    w.u32(3).string(description).u32(1).boolean(True).u32(0).string(reason)
    return w.boolean(True).boolean(False)


def rescan_element(w: Writer, *, ident: int) -> Writer:
    return analysis_element(w, ident=ident).u32(4).boolean(True)


def bscan_element(w: Writer, *, ident: int) -> Writer:
    return analysis_element(w, ident=ident).boolean(False)


def depth_profile(w: Writer, n: int) -> Writer:
    w.u32(n)
    for k in range(n):
        w.f32(float(k)).f32(180.0).f32(0.25)
    return w


def dfp_block(w: Writer, *, marker: bytes = b"DFP", n: int = 1) -> Writer:
    w.raw(marker)
    if marker != b"DFP":
        return w
    w.u32(n)
    for k in range(n):
        w.f32(100.0 + k).f32(45.0).f32(2.5).f32(3.0).string(b"us->mm")
    return w


def extended_indication(w: Writer, *, profiles: Sequence[int] = (2, 0, 1),
                        dfp_marker: bytes = b"DFP", dfp_n: int = 1) -> Writer:
    w.raw(b"EI")
    for v in (1.0, 2.0, 3.0, 4.0, -6.0):
        w.f32(v)
    for k in range(8):
        w.u8(80 + k)
    for k in range(10):
        w.f32(0.5 * k)
    for k in range(7):
        w.boolean(k % 2 == 0)
    for n in profiles:
        depth_profile(w, n)
    w.string(b"IND-1").u32(42).boolean(False).boolean(True)
    return dfp_block(w, marker=dfp_marker, n=dfp_n)


def indication(w: Writer, *, ident: int, reportable: Iterable[int] = (1,), bscan: Iterable[int] = (),
               extended: Optional[dict] = None) -> Writer:
    w.u32(ident)
    for k in range(13):
        w.f32(float(k))
    w.string(b"depth conv").string(b"wt conv").string(b"comment")
    w.u32(2).u32(5)
    w.ids(list(reportable)).ids(list(bscan))
    if extended is not None:
        extended_indication(w, **extended)
    return w


def rescan_record(w: Writer, *, ident: int, elements: Sequence[int] = (1, 2)) -> Writer:
    return w.u32(ident).f32(1.0).f32(2.0).u32(0x10).boolean(True).u32(1).ids(elements)


def bscan_record(w: Writer, *, ident: int, elements: Sequence[int] = (7,)) -> Writer:
    return w.u32(ident).f32(1.0).f32(2.0).f32(3.0).f32(4.0).boolean(True).boolean(False).u32(1).ids(elements)


def scan_file_record(w: Writer) -> Writer:
    return w.string(b"scan_0001.bin").ids([1]).ids([2, 3]).ids([])


def minimal_file() -> bytes:
    """Marker, all-zero header with empty strings, absent joints, every list empty."""
    w = Writer().raw(b"CF")
    header(w)
    w.u32(0)
    rolled_joint(w, present=False)
    rolled_joint(w, present=False)
    for _ in range(7):
        w.u32(0)
    return w.data


def full_file(*, dfp_marker: bytes = b"DFP") -> bytes:
    """Every section populated; indication 11 carries an EI block, 12 does not."""
    w = Writer().raw(b"CF")
    header(w, station=4, head=b"HEAD-7", operator=b"J. Doe", date=b"2023-05-17", time=b"12:07")
    w.u32(1)
    calibration(w)
    rolled_joint(w, present=True, end=123)
    rolled_joint(w, present=False)
    w.u32(2)
    rescan_element(w, ident=1)
    rescan_element(w, ident=2)
    w.u32(1)
    bscan_element(w, ident=7)
    w.u32(1)
    analysis_element(w, ident=1, reason=b"noise")
    w.u32(2)
    indication(w, ident=11, reportable=(1,), bscan=(7,), extended={"dfp_marker": dfp_marker})
    indication(w, ident=12)
    w.u32(1)
    rescan_record(w, ident=1)
    w.u32(1)
    bscan_record(w, ident=2)
    w.u32(1)
    scan_file_record(w)
    return w.data
