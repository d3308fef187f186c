"""Report module: writes annotations, transcript, summary and an HTML index."""

from .assembler import ReportArtifact, ReportAssembler, ReportWriteError

__all__ = [
    "ReportArtifact",
    "ReportAssembler",
    "ReportWriteError",
]
