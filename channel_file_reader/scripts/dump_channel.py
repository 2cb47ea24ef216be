"""
Dump a channel file as a YAML (or JSON) tree.

The tree is ``ChannelFile.to_dict()`` with string fields decoded using the
reader's ``text_encoding`` (latin-1 by default, which maps every byte).

Examples
--------
Command line::

    cf-dump P12-A03.cf > P12-A03.yaml
    cf-dump --verbose --tables-dir out/ P12-A03.cf

Python:

>>> from channel_file_reader.scripts.dump_channel import dump_yaml
>>> text = dump_yaml(doc)   # doctest: +SKIP
"""

from __future__ import annotations

import json
import logging
import math
import sys
from typing import Any, Optional, Sequence

import yaml

from channel_file_reader.ingest.errors import ChannelFileError
from channel_file_reader.ingest.reader_channel import ChannelFileReader, ChannelFileReaderConfig
from channel_file_reader.models.records import ChannelFile
from channel_file_reader.scripts.export_tables import export_tables


def to_plain(value: Any, encoding: str = "latin-1", *, finite_only: bool = False) -> Any:
    """
    Replace every ``bytes`` leaf of a nested dict/list with decoded text.

    finite_only:
      Also replace NaN/inf floats with None (strict JSON has no literal for them).
    """
    if isinstance(value, dict):
        return {k: to_plain(v, encoding, finite_only=finite_only) for k, v in value.items()}
    if isinstance(value, list):
        return [to_plain(v, encoding, finite_only=finite_only) for v in value]
    if isinstance(value, bytes):
        return value.decode(encoding, errors="replace")
    if finite_only and isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def dump_yaml(doc: ChannelFile, *, encoding: str = "latin-1") -> str:
    return yaml.safe_dump(
        to_plain(doc.to_dict(), encoding),
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )


def dump_json(doc: ChannelFile, *, encoding: str = "latin-1") -> str:
    """Strict JSON: non-finite floats are written as null."""
    return json.dumps(
        to_plain(doc.to_dict(), encoding, finite_only=True),
        indent=2,
        ensure_ascii=False,
        allow_nan=False,
    )


def _trace_handler() -> logging.Handler:
    """Attach a DEBUG stderr handler to the package logger (independent of root config)."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(logging.Formatter("%(message)s"))
    pkg_log = logging.getLogger("channel_file_reader")
    pkg_log.addHandler(handler)
    pkg_log.setLevel(logging.DEBUG)
    return handler


def main(argv: Optional[Sequence[str]] = None) -> int:
    import argparse
    import textwrap

    p = argparse.ArgumentParser(
        prog="cf-dump",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        description=textwrap.dedent(
            """\
            Decode an inspection channel file and print it as a YAML tree.

            Decoding stops at the first malformed record; the error names the byte
            offset and the section being decoded.
            """
        ),
    )
    p.add_argument("filename", help="Channel file to decode")
    p.add_argument("--verbose", action="store_true", help="Trace every section while decoding (stderr)")
    p.add_argument("--format", choices=("yaml", "json"), default="yaml", help="Tree format written to stdout")
    p.add_argument(
        "--dfp-rewind",
        action="store_true",
        help="Do not consume the 3 bytes of a mismatched DFP marker (diverges from the instrument reader)",
    )
    p.add_argument("--strict-markers", action="store_true", help="Fail on a DFP marker mismatch instead of warning")
    p.add_argument("--max-list-count", type=int, default=None, help="Reject lists longer than this")
    p.add_argument("--encoding", default="latin-1", help="Text encoding used to render string fields")
    p.add_argument("--tables-dir", default=None, help="Also write one CSV table per section into this directory")

    ns = p.parse_args(list(argv) if argv is not None else None)

    cfg = ChannelFileReaderConfig(
        dfp_rewind=bool(ns.dfp_rewind),
        strict_markers=bool(ns.strict_markers),
        max_list_count=ns.max_list_count,
        text_encoding=ns.encoding,
    )

    pkg_log = logging.getLogger("channel_file_reader")
    prev_level = pkg_log.level
    handler = _trace_handler() if ns.verbose else None
    try:
        doc = ChannelFileReader(cfg).read(ns.filename)
    except (ChannelFileError, OSError) as e:
        print(f"[error] {ns.filename}: {type(e).__name__}: {e}", file=sys.stderr)
        return 1
    finally:
        if handler is not None:
            pkg_log.removeHandler(handler)
            pkg_log.setLevel(prev_level)

    for w in doc.warnings:
        print(f"[warn] {w}", file=sys.stderr)
    if ns.verbose:
        counts = ", ".join(f"{k}={v}" for k, v in doc.summary().items())
        print(f"[info] decoded {doc.bytes_consumed}/{doc.size_bytes} bytes: {counts}", file=sys.stderr)

    if ns.format == "json":
        sys.stdout.write(dump_json(doc, encoding=cfg.text_encoding) + "\n")
    else:
        sys.stdout.write(dump_yaml(doc, encoding=cfg.text_encoding))

    if ns.tables_dir:
        written = export_tables(doc, ns.tables_dir, encoding=cfg.text_encoding)
        print(f"[info] wrote {len(written)} tables to {ns.tables_dir}", file=sys.stderr)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
