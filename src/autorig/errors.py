from __future__ import annotations


class AutoRigError(Exception):
    """Base class for resolver failures surfaced to callers."""


class ExtractionError(AutoRigError):
    """The intent extractor failed or returned something unusable."""


class GraphStoreError(AutoRigError):
    """The compatibility graph store could not answer a query."""
