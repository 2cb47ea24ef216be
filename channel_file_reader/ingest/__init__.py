"""Ingest package - channel file decoding.

This package handles:
- Primitive reads (bool, byte, short, long, float, string) from a byte cursor
- Count-prefixed lists and marker-guarded optional blocks
- Assembling all sections into one ChannelFile

Key classes:
- ByteCursor: forward-only cursor with peek/commit and section paths for errors
- ChannelFileDecoder: one decoder method per record type
- ChannelFileReader: reads a path/bytes/stream into a ChannelFile

Design principle:
- Decoding either succeeds for the whole file or raises a ChannelFileError
- Non-fatal findings are kept in ChannelFile.warnings
"""
from .cursor import ByteCursor
from .errors import (
    ChannelFileError,
    ImplausibleCount,
    InvalidFormat,
    StructuralAmbiguity,
    UnexpectedEndOfInput,
)
from .reader_channel import (
    ChannelFileDecoder,
    ChannelFileReader,
    ChannelFileReaderConfig,
    read_channel_file,
)

__all__ = [
    "ByteCursor",
    "ChannelFileError",
    "ImplausibleCount",
    "InvalidFormat",
    "StructuralAmbiguity",
    "UnexpectedEndOfInput",
    "ChannelFileDecoder",
    "ChannelFileReader",
    "ChannelFileReaderConfig",
    "read_channel_file",
]
