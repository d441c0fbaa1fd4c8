"""
Conversion Pipeline

Orchestrates a batch:
1. Discovers source files under the input path
2. Builds the ProjectContext from every file (analysis phase)
3. Converts each file and writes the mirrored output tree
4. Collects per-file results into a BatchResult

The analysis phase finishes before the first file is translated. A
failure on one file is logged and recorded; the batch carries on.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import structlog

from pomshift.config import Settings, get_settings
from pomshift.core.classifier import ProjectContext, build_project_context, module_path
from pomshift.core.converter import ConversionResult, convert_document
from pomshift.core.pattern_service import PatternRecognizer, get_pattern_recognizer
from pomshift.core.source import SourceDocument

logger = structlog.get_logger()


class ConversionError(Exception):
    """A single file could not be read, converted or written."""

    def __init__(self, path: Path, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}")


class FileStatus(str, Enum):
    """Per-file conversion status."""

    CONVERTED = "converted"
    FAILED = "failed"


@dataclass
class FileResult:
    """Result of converting one file."""

    source: Path
    status: FileStatus
    output: Path | None = None
    diagnostics: int = 0
    error_message: str | None = None
    duration_ms: float = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": str(self.source),
            "status": self.status.value,
            "output": str(self.output) if self.output else None,
            "diagnostics": self.diagnostics,
            "error_message": self.error_message,
            "duration_ms": round(self.duration_ms, 2),
        }


@dataclass
class BatchResult:
    """Summary of a whole batch."""

    input_path: Path
    output_path: Path
    started_at: datetime
    completed_at: datetime | None = None
    files: list[FileResult] = field(default_factory=list)
    project_classes: int = 0

    @property
    def converted(self) -> int:
        return sum(1 for f in self.files if f.status == FileStatus.CONVERTED)

    @property
    def failed(self) -> int:
        return sum(1 for f in self.files if f.status == FileStatus.FAILED)

    def to_dict(self) -> dict[str, Any]:
        return {
            "input_path": str(self.input_path),
            "output_path": str(self.output_path),
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "total": len(self.files),
            "converted": self.converted,
            "failed": self.failed,
            "project_classes": self.project_classes,
            "files": [f.to_dict() for f in self.files],
        }


class ConversionPipeline:
    """
    Batch driver for file or directory conversion.

    Usage:
        pipeline = ConversionPipeline()
        result = pipeline.run(Path("src/test/java"))
        print(result.converted, result.failed)
    """

    def __init__(
        self,
        settings: Settings | None = None,
        recognizer: PatternRecognizer | None = None,
    ):
        self.settings = settings or get_settings()
        self.recognizer = recognizer if recognizer is not None else get_pattern_recognizer(self.settings)

    def default_output(self, input_path: Path) -> Path:
        """`<dir>_playwright` next to a directory; the file's own folder otherwise."""
        if input_path.is_dir():
            return input_path.with_name(input_path.name + self.settings.output_dir_suffix)
        return input_path.parent

    def discover(self, input_path: Path) -> list[Path]:
        """Source files under `input_path`, sorted, skipping excluded directories."""
        extensions = {ext.lower() for ext in self.settings.source_extensions}
        if input_path.is_file():
            return [input_path]
        excluded = set(self.settings.excluded_dirs)
        files = []
        for path in sorted(input_path.rglob("*")):
            if not path.is_file() or path.suffix.lower() not in extensions:
                continue
            if excluded.intersection(path.relative_to(input_path).parts[:-1]):
                continue
            files.append(path)
        return files

    def output_for(self, source: Path, root: Path, output_root: Path) -> Path:
        relative = source.relative_to(root)
        return (output_root / relative).with_suffix(self.settings.output_extension)

    def _read(self, path: Path) -> SourceDocument:
        try:
            return SourceDocument.read(path, encoding=self.settings.source_encoding)
        except (OSError, UnicodeDecodeError) as e:
            raise ConversionError(path, f"cannot read input: {e}") from e

    def analyze(self, documents: list[SourceDocument], root: Path) -> ProjectContext:
        """Analysis phase: classify every class of the batch."""
        return build_project_context(documents, root=root)

    def convert_file(
        self,
        doc: SourceDocument,
        root: Path,
        output_root: Path,
        project: ProjectContext | None,
    ) -> FileResult:
        start = time.time()
        source = doc.path
        target = self.output_for(source, root, output_root)
        result = convert_document(
            doc,
            project=project,
            recognizer=self.recognizer,
            settings=self.settings,
            module=module_path(source, root),
        )
        self._write(target, result, doc)
        return FileResult(
            source=source,
            status=FileStatus.CONVERTED,
            output=target,
            diagnostics=len(result.diagnostics),
            duration_ms=(time.time() - start) * 1000,
        )

    def _write(self, target: Path, result: ConversionResult, doc: SourceDocument) -> None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(result.code, encoding="utf-8")
            if self.settings.write_diagnostics:
                stem = target.with_suffix("")
                Path(f"{stem}.source.txt").write_text(doc.numbered() + "\n", encoding="utf-8")
                Path(f"{stem}.skipped.txt").write_text(result.skipped_report(), encoding="utf-8")
        except OSError as e:
            raise ConversionError(target, f"cannot write output: {e}") from e

    def run(self, input_path: Path, output_path: Path | None = None) -> BatchResult:
        """
        Convert a file or directory tree.

        Args:
            input_path: Java file or directory
            output_path: Output root (defaults to default_output())

        Returns:
            BatchResult with one FileResult per discovered file
        """
        input_path = Path(input_path)
        output_root = Path(output_path) if output_path else self.default_output(input_path)
        root = input_path if input_path.is_dir() else input_path.parent

        batch = BatchResult(
            input_path=input_path,
            output_path=output_root,
            started_at=datetime.utcnow(),
        )
        files = self.discover(input_path)
        logger.info("batch_starting", input=str(input_path), output=str(output_root), files=len(files))

        # Phase 1: read everything, then analyze
        documents: list[SourceDocument] = []
        for path in files:
            try:
                documents.append(self._read(path))
            except ConversionError as e:
                logger.warning("file_read_failed", path=str(path), error=e.message)
                batch.files.append(
                    FileResult(source=path, status=FileStatus.FAILED, error_message=str(e))
                )

        project = None
        if self.settings.use_project_context and documents:
            project = self.analyze(documents, root)
            batch.project_classes = len(project)

        # Phase 2: translate
        for doc in documents:
            try:
                batch.files.append(self.convert_file(doc, root, output_root, project))
            except ConversionError as e:
                logger.error("file_conversion_failed", path=str(doc.path), error=e.message)
                batch.files.append(
                    FileResult(source=doc.path, status=FileStatus.FAILED, error_message=str(e))
                )
            except Exception as e:
                logger.exception("file_conversion_error", path=str(doc.path), error=str(e))
                batch.files.append(
                    FileResult(source=doc.path, status=FileStatus.FAILED, error_message=str(e))
                )

        batch.files.sort(key=lambda f: str(f.source))
        batch.completed_at = datetime.utcnow()
        logger.info(
            "batch_complete",
            total=len(batch.files),
            converted=batch.converted,
            failed=batch.failed,
        )
        return batch
