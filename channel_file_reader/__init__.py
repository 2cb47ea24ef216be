"""Channel File Reader -- Python tooling for fuel-channel inspection channel files.

A channel file is the binary container an ultrasonic / eddy-current inspection
instrument writes for one fuel channel: calibrations, rolled joint locations,
analysis elements, indications and scan records.

This package provides tools for:
- Decoding channel files into immutable, traversable records
- Dumping a decoded file as a YAML or JSON tree
- Exporting every section as a flat table (CSV/Parquet) for analysis

Key principles:
- The decoder is the schema: fields are read in file order, nothing is skipped or defaulted
- One forward pass: the first malformed record aborts the read, with its byte offset and section
- Known quirks of the instrument's own reader (the DFP marker skip) are reproduced and reported

Main subpackages:
- ingest: Byte cursor, record decoders and the ChannelFileReader
- models: Record dataclasses (ChannelFile, Indication, ...)
- scripts: YAML/JSON dump (cf-dump) and table export
"""

__all__ = []
