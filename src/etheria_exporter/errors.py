"""
Exception Taxonomy

Every failure the exporter raises on its own derives from EtheriaExportError:
- InputValidationError: bad tile index, col/row, hex text or request options
- BlobFormatError: the on-chain name blob cannot be decoded as a new build
- UnsupportedVersionError: unknown contract version string

Errors raised by the chain client are not part of this tree.
They propagate to the caller exactly as the client raised them.
"""

from typing import Optional


class EtheriaExportError(Exception):
    """Base class for all exporter errors."""


class InputValidationError(EtheriaExportError, ValueError):
    """A request parameter is missing, malformed or out of range."""


class UnsupportedVersionError(EtheriaExportError, KeyError):
    """The requested Etheria version has no contract table entry."""

    def __init__(self, version: str, known: Optional[list] = None):
        self.version = version
        self.known = list(known or [])
        super().__init__(version)

    def __str__(self) -> str:
        return f"Unknown version: {self.version}. Use one of: {', '.join(self.known)}"


class BlobFormatError(EtheriaExportError):
    """The name blob is not a decodable new build."""


class MissingBlobError(BlobFormatError, InputValidationError):
    """No 0x... run was found and no explicit blob was supplied."""


class NoZlibHeaderError(BlobFormatError):
    """No zlib signature inside the scan window after the title."""


class InflateError(BlobFormatError):
    """The compressed payload failed to inflate."""


class UnrecognizedEncodingError(BlobFormatError):
    """The inflated length matches none of the known grid encodings."""

    def __init__(self, length: int, message: Optional[str] = None):
        self.length = length
        super().__init__(message or f"inflated length {length} not recognized")
