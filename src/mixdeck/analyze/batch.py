"""
Batch ingestion of external analysis results.

The analyzer is any callable taking a source (file path or name) and
returning the external service's record, either a TrackAnalysis or its JSON
dict. Sources are processed one at a time with a fixed pause between
requests. A failing item is logged and counted and never aborts the batch.
There is no cancellation of an in-flight batch.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from ..models import LibraryTrack, TrackAnalysis

logger = logging.getLogger(__name__)

Analyzer = Callable[[str], Union[TrackAnalysis, Dict[str, Any]]]


class BatchAnalysisError(Exception):
    """Raised when every item of a non-empty batch failed."""

    def __init__(self, result: "BatchResult"):
        self.result = result
        super().__init__(
            f"No file could be analyzed ({len(result.failed)} of {result.total} failed)"
        )


@dataclass
class BatchResult:
    """Outcome of one ingestion batch."""

    total: int = 0
    succeeded: List[LibraryTrack] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)  # (source, message)

    @property
    def last_track(self) -> Optional[LibraryTrack]:
        return self.succeeded[-1] if self.succeeded else None


def load_analysis_file(path: str) -> Dict[str, Any]:
    """
    Read a saved analysis record (the external service's JSON output).

    Args:
        path: Path to the JSON file

    Returns:
        Parsed JSON object (validated later by TrackAnalysis.from_dict)
    """
    with open(path, "r", encoding="utf-8") as handle:
        return json.load(handle)


class BatchIngestor:
    """Runs an analyzer over many sources and appends the results to a library."""

    def __init__(
        self,
        store,
        analyzer: Analyzer,
        delay_seconds: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Args:
            store: LibraryStore receiving the new tracks
            analyzer: External analysis adapter
            delay_seconds: Pause between consecutive items
            sleep: Sleep function (injectable for tests)
        """
        self.store = store
        self.analyzer = analyzer
        self.delay_seconds = delay_seconds
        self.sleep = sleep

    def _ingest_one(self, source: str) -> LibraryTrack:
        record = self.analyzer(source)
        analysis = record if isinstance(record, TrackAnalysis) else TrackAnalysis.from_dict(record)

        track = LibraryTrack.create(analysis, file_name=Path(source).name)
        self.store.append(track)
        return track

    def run(self, sources: Iterable[str]) -> BatchResult:
        """
        Analyze and store each source in turn.

        Args:
            sources: File paths or names understood by the analyzer

        Returns:
            BatchResult; the last stored track becomes the selection

        Raises:
            BatchAnalysisError: If there was at least one source and none succeeded
        """
        sources = list(sources)
        result = BatchResult(total=len(sources))

        for index, source in enumerate(sources):
            if index > 0 and self.delay_seconds > 0:
                self.sleep(self.delay_seconds)

            logger.info(f"Analyzing {index + 1} of {result.total}: {Path(source).name}")

            try:
                track = self._ingest_one(source)
            except Exception as e:
                logger.error(f"Analysis failed for {source}: {e}", exc_info=True)
                result.failed.append((source, str(e)))
                continue

            result.succeeded.append(track)

        if result.total and not result.succeeded:
            raise BatchAnalysisError(result)

        if result.last_track is not None:
            self.store.select(result.last_track.id)

        logger.info(
            f"✅ Batch complete: {len(result.succeeded)} added, {len(result.failed)} failed"
        )
        return result
