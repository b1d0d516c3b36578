"""Exception types raised by the conversion pipeline."""

from __future__ import annotations


class ConversionError(RuntimeError):
    """Base class for psd2json failures."""


class DocumentError(ConversionError):
    """The input document is missing, unreadable or malformed. Fatal for the run."""


class ExportError(ConversionError):
    """A single layer could not be exported. Recovered by the flattener."""
