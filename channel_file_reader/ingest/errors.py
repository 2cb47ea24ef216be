"""Errors raised while decoding a channel file.

All of them derive from ``ValueError`` (malformed input) and carry the byte
offset and the section path (e.g. ``indications[2].extended.dfp``) at which
decoding stopped. No partial document is returned once one is raised.
"""

from __future__ import annotations

from typing import Optional


class ChannelFileError(ValueError):
    """Base class; ``offset`` and ``section`` locate the failure."""

    def __init__(self, message: str, *, offset: Optional[int] = None, section: str = "") -> None:
        self.message = message
        self.offset = offset
        self.section = section
        super().__init__(self._format())

    def _format(self) -> str:
        where = []
        if self.offset is not None:
            where.append(f"offset={self.offset} (0x{self.offset:X})")
        if self.section:
            where.append(f"section={self.section}")
        if not where:
            return self.message
        return f"{self.message} [{', '.join(where)}]"


class InvalidFormat(ChannelFileError):
    """The stream does not start with the ``CF`` marker."""


class UnexpectedEndOfInput(ChannelFileError):
    """A read needed more bytes than the stream has left."""

    def __init__(
        self,
        message: str,
        *,
        offset: Optional[int] = None,
        section: str = "",
        needed: int = 0,
        available: int = 0,
    ) -> None:
        self.needed = int(needed)
        self.available = int(available)
        super().__init__(message, offset=offset, section=section)


class ImplausibleCount(ChannelFileError):
    """A list count exceeds ``ChannelFileReaderConfig.max_list_count``."""


class StructuralAmbiguity(ChannelFileError):
    """
    A DFP marker did not match and the cursor cannot be re-aligned unambiguously.

    Only raised with ``strict_markers=True``; otherwise the same finding is
    recorded in ``ChannelFile.warnings``.
    """
