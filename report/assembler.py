"""Writes the on-disk report for an analyzed monitor run."""

import html
import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Sequence, TYPE_CHECKING

if TYPE_CHECKING:
    from analyzer.engine import AnnotationSet
    from capture.scheduler import SnapshotRecord
    from utils.logger import MonitorLogger

_module_logger = logging.getLogger(__name__)

TRANSCRIPT_FILENAME = "conversation_log.md"
SUMMARY_FILENAME = "workflow_summary.md"
INDEX_FILENAME = "index.html"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


class ReportWriteError(Exception):
    """Writing one of the report files failed."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


@dataclass
class ReportArtifact:
    """Paths of every file written for one report."""

    output_dir: Path
    snapshots: tuple["SnapshotRecord", ...]
    images: list[Path] = field(default_factory=list)
    annotation_files: list[Path] = field(default_factory=list)
    transcript: Path | None = None
    summary: Path | None = None
    index: Path | None = None

    def to_dict(self) -> dict:
        """Convert to serializable dictionary."""
        return {
            "output_dir": str(self.output_dir),
            "snapshots": [s.to_dict() for s in self.snapshots],
            "images": [str(p) for p in self.images],
            "annotation_files": [str(p) for p in self.annotation_files],
            "transcript": str(self.transcript) if self.transcript else None,
            "summary": str(self.summary) if self.summary else None,
            "index": str(self.index) if self.index else None,
        }


def annotation_filename(snapshot: "SnapshotRecord") -> str:
    """``screenshot-1-....png`` -> ``screenshot-1-...-annotation.md``"""
    return f"{snapshot.image_path.stem}-annotation.md"


class ReportAssembler:
    """Persists annotations, transcript, summary and a cross-linked index.

    Files are overwritten in place. Writes are not atomic: an interrupted run
    can leave a mix of old and new files in the output directory.
    """

    def __init__(
        self,
        title: str = "Workflow Analysis",
        clock: Callable[[], datetime] = datetime.now,
        logger: "MonitorLogger | None" = None,
    ):
        self.title = title
        self.clock = clock
        self.logger = logger

    def assemble(
        self,
        snapshots: Sequence["SnapshotRecord"],
        annotations: "AnnotationSet",
        output_dir: Path,
    ) -> ReportArtifact:
        """Write the full report.

        Raises:
            ValueError: If annotation and snapshot counts differ.
            ReportWriteError: If any file could not be written.
        """
        if len(annotations.annotations) != len(snapshots):
            raise ValueError(
                f"Got {len(annotations.annotations)} annotations for {len(snapshots)} snapshots"
            )

        output_dir = Path(output_dir)
        artifact = ReportArtifact(output_dir=output_dir, snapshots=tuple(snapshots))
        generated_at = self.clock()

        try:
            output_dir.mkdir(parents=True, exist_ok=True)

            for snapshot, annotation in zip(snapshots, annotations.annotations):
                artifact.images.append(self._copy_image(snapshot, output_dir))
                annotation_path = output_dir / annotation_filename(snapshot)
                annotation_path.write_text(annotation, encoding="utf-8")
                artifact.annotation_files.append(annotation_path)
                _module_logger.debug(f"Saved screenshot and annotation for {snapshot.filename}")

            artifact.transcript = output_dir / TRANSCRIPT_FILENAME
            artifact.transcript.write_text(
                self.render_transcript(snapshots, annotations, generated_at),
                encoding="utf-8",
            )

            artifact.summary = output_dir / SUMMARY_FILENAME
            artifact.summary.write_text(annotations.summary, encoding="utf-8")

            artifact.index = output_dir / INDEX_FILENAME
            artifact.index.write_text(
                self.render_index(snapshots, annotations.summary, generated_at),
                encoding="utf-8",
            )
        except OSError as e:
            raise ReportWriteError(f"Error creating report in {output_dir}: {e}") from e

        if self.logger:
            self.logger.success(f"Report created in [cyan]{output_dir}[/cyan]")
        return artifact

    def _copy_image(self, snapshot: "SnapshotRecord", output_dir: Path) -> Path:
        """Place the snapshot image next to the index so it can be linked relatively."""
        destination = output_dir / snapshot.filename
        if snapshot.image_path.resolve() != destination.resolve():
            shutil.copyfile(snapshot.image_path, destination)
        return destination

    def render_transcript(
        self,
        snapshots: Sequence["SnapshotRecord"],
        annotations: "AnnotationSet",
        generated_at: datetime,
    ) -> str:
        """Markdown log: one section per snapshot, then the summary section."""
        sections = [f"# {self.title}: Conversation Log"]
        for snapshot, annotation in zip(snapshots, annotations.annotations):
            sections.append(
                f"## Screenshot {snapshot.number}: {snapshot.filename}\n"
                f"*Timestamp: {snapshot.captured_at.strftime(TIMESTAMP_FORMAT)}*\n\n"
                f"### Analysis:\n{annotation}"
            )
        sections.append(
            f"## Workflow Summary\n"
            f"*Generated on: {generated_at.strftime(TIMESTAMP_FORMAT)}*\n\n"
            f"{annotations.summary}"
        )
        return "\n\n".join(sections) + "\n"

    def render_index(
        self,
        snapshots: Sequence["SnapshotRecord"],
        summary: str,
        generated_at: datetime,
    ) -> str:
        """Static HTML page linking every snapshot, the transcript and the summary."""
        title = html.escape(self.title)
        summary_html = html.escape(summary).replace("\n", "<br>\n")

        items = []
        for snapshot in snapshots:
            image_src = html.escape(snapshot.filename)
            annotation_href = html.escape(annotation_filename(snapshot))
            captured = snapshot.captured_at.strftime(TIMESTAMP_FORMAT)
            items.append(f"""
    <div class="screenshot-item">
      <h3>Screenshot {snapshot.number}</h3>
      <div class="timestamp">{captured}</div>
      <img src="{image_src}" alt="Screenshot {snapshot.number}">
      <p><a href="{annotation_href}" target="_blank">View Analysis</a></p>
    </div>""")

        return f"""<!doctype html>
<html>
<head>
  <meta charset="utf-8">
  <title>{title}</title>
  <style>
    body {{ font-family: Arial, sans-serif; margin: 0; padding: 20px; }}
    h1, h2 {{ color: #333; }}
    .timestamp {{ color: #666; font-size: 0.9em; margin-bottom: 12px; }}
    .summary {{ background-color: #f5f5f5; padding: 20px; border-radius: 5px; margin-bottom: 30px; }}
    .screenshot-list {{ display: flex; flex-wrap: wrap; gap: 20px; }}
    .screenshot-item {{ border: 1px solid #ddd; padding: 15px; border-radius: 5px; width: 300px; }}
    .screenshot-item img {{ max-width: 100%; max-height: 200px; }}
    .screenshot-item h3 {{ margin-top: 0; }}
    .links a {{ display: block; margin-bottom: 10px; }}
  </style>
</head>
<body>
  <h1>{title}</h1>
  <div class="timestamp">Generated on: {generated_at.strftime(TIMESTAMP_FORMAT)}</div>

  <div class="summary">
    <h2>Workflow Summary</h2>
    <div>{summary_html}</div>
  </div>

  <h2>Screenshots</h2>
  <div class="screenshot-list">{"".join(items)}
  </div>

  <div class="links">
    <h2>Detailed Analysis</h2>
    <a href="{TRANSCRIPT_FILENAME}" target="_blank">View Complete Conversation Log</a>
    <a href="{SUMMARY_FILENAME}" target="_blank">View Workflow Summary</a>
  </div>
</body>
</html>
"""
