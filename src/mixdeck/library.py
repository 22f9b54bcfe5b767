"""
Library Store: the persisted collection of analyzed tracks.

- Newest first: appended and imported tracks go to the head
- Every mutation saves the whole library before returning
- Import is additive only: records whose id already exists are dropped
- Sorting returns a view; stored order is untouched

Persistence goes through a byte-blob port with get(key)/set(key, value).
Two keys are used: "library" (JSON array of tracks) and "last-selected-id".
"""

import json
import math
import logging
from typing import Any, Dict, Iterable, List, Optional, Union

from .generate.suggest import get_suggestions
from .models import AnalysisFormatError, LibraryTrack

logger = logging.getLogger(__name__)

LIBRARY_KEY = "library"
SELECTED_KEY = "last-selected-id"

SORT_FIELDS = ("dateAdded", "bpm", "fileName", "key")
SORT_DIRECTIONS = ("asc", "desc")


class LibraryImportError(Exception):
    """Raised when an import document is rejected. The library is left unchanged."""
    pass


def _sort_key(field: str):
    if field == "key":
        # Unparsed keys sort as (0, "") and therefore ahead of 1A in ascending order
        return lambda t: (t.camelot_number or 0, t.camelot_letter or "")
    if field == "bpm":
        return lambda t: t.bpm
    if field == "fileName":
        return lambda t: t.file_name
    return lambda t: t.date_added


def _serialize(tracks: List[LibraryTrack]) -> bytes:
    return json.dumps([t.to_dict() for t in tracks], ensure_ascii=False).encode("utf-8")


class LibraryStore:
    """Owns the track library, the current selection and their persistence."""

    def __init__(self, storage):
        """
        Args:
            storage: Backend exposing get(key) -> Optional[bytes] and set(key, bytes)
        """
        self.storage = storage
        self.tracks: List[LibraryTrack] = []
        self.selected_id: Optional[str] = None
        self.last_error: Optional[str] = None

    def __len__(self) -> int:
        return len(self.tracks)

    def __iter__(self):
        return iter(self.tracks)

    def __contains__(self, track_id: str) -> bool:
        return any(t.id == track_id for t in self.tracks)

    # ------------------------------------------------------------------
    # Hydrate / persist
    # ------------------------------------------------------------------

    def load(self) -> bool:
        """
        Hydrate the library from storage.

        A malformed library document never raises: it is logged, kept in
        last_error, and the library starts empty. Individual records that do
        not parse are skipped.

        Returns:
            True if the stored document was usable (or absent), False otherwise
        """
        self.tracks = []
        self.selected_id = None
        self.last_error = None

        payload = self.storage.get(LIBRARY_KEY)
        if payload is None:
            logger.info("No stored library; starting empty")
            return True

        try:
            records = json.loads(payload)
        except (ValueError, UnicodeDecodeError) as e:
            self.last_error = f"Stored library is not valid JSON: {e}"
            logger.error(self.last_error)
            return False

        if not isinstance(records, list):
            self.last_error = f"Stored library must be a JSON array, got {type(records).__name__}"
            logger.error(self.last_error)
            return False

        self.tracks = self._parse_records(records)
        self._restore_selection()

        logger.info(f"✅ Library loaded: {len(self.tracks)} tracks")
        return True

    def _restore_selection(self) -> None:
        raw = self.storage.get(SELECTED_KEY)
        if not raw:
            return
        try:
            selected_id = raw.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Stored selection is not valid UTF-8; ignoring")
            return
        if selected_id in self:
            self.selected_id = selected_id
        else:
            logger.debug(f"Stored selection {selected_id} no longer in library")

    def _parse_records(self, records: Iterable[Any]) -> List[LibraryTrack]:
        tracks = []
        for index, record in enumerate(records):
            try:
                tracks.append(LibraryTrack.from_dict(record))
            except AnalysisFormatError as e:
                logger.warning(f"Skipping invalid library record #{index}: {e}")
        return tracks

    def _commit(self, tracks: List[LibraryTrack]) -> None:
        # Memory only follows once storage has accepted the new list
        self.storage.set(LIBRARY_KEY, _serialize(tracks))
        self.tracks = tracks

    def _commit_selection(self, selected_id: Optional[str]) -> None:
        value = selected_id.encode("utf-8") if selected_id else b""
        self.storage.set(SELECTED_KEY, value)
        self.selected_id = selected_id

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def append(self, track: LibraryTrack) -> None:
        """
        Add a track at the head of the library and persist.

        Args:
            track: Newly created LibraryTrack

        Raises:
            ValueError: If a track with the same id is already present
        """
        if track.id in self:
            raise ValueError(f"Track id already in library: {track.id}")

        self._commit([track] + self.tracks)
        logger.info(f"✅ Added {track.file_name} ({track.bpm:g} BPM, {track.key})")

    def delete(self, track_id: str) -> bool:
        """
        Remove the track with the given id and persist.

        Unknown ids are a silent no-op. Deleting the selected track clears
        the selection.

        Returns:
            True if a track was removed
        """
        track = self.get(track_id)
        if track is None:
            logger.debug(f"Delete of unknown track {track_id} ignored")
            return False

        self._commit([t for t in self.tracks if t.id != track_id])
        if self.selected_id == track_id:
            self.clear_selection()

        logger.info(f"Deleted {track.file_name}")
        return True

    def merge_import(self, external_tracks: Iterable[Union[LibraryTrack, Dict[str, Any]]]) -> int:
        """
        Merge externally supplied tracks into the library and persist.

        New ids are placed ahead of the existing tracks, keeping their
        relative order. Ids already present (or repeated within the batch)
        are dropped silently; existing records are never updated.

        Args:
            external_tracks: LibraryTrack objects or their JSON dicts. Dicts
                that do not parse are skipped with a warning.

        Returns:
            Number of tracks accepted
        """
        seen = {t.id for t in self.tracks}
        accepted: List[LibraryTrack] = []

        for index, item in enumerate(external_tracks):
            if isinstance(item, LibraryTrack):
                track = item
            else:
                try:
                    track = LibraryTrack.from_dict(item)
                except AnalysisFormatError as e:
                    logger.warning(f"Skipping invalid import record #{index}: {e}")
                    continue

            if track.id in seen:
                logger.debug(f"Import skipped existing track {track.id}")
                continue

            seen.add(track.id)
            accepted.append(track)

        self._commit(accepted + self.tracks)

        logger.info(f"✅ Imported {len(accepted)} new tracks ({len(self.tracks)} total)")
        return len(accepted)

    def import_json(self, payload: Union[bytes, str]) -> int:
        """
        Merge an exported library document.

        Args:
            payload: JSON text or bytes; must be a top-level array

        Returns:
            Number of tracks accepted

        Raises:
            LibraryImportError: If the payload is not JSON or not an array.
                Nothing is merged in that case.
        """
        try:
            records = json.loads(payload)
        except (ValueError, UnicodeDecodeError) as e:
            raise LibraryImportError(f"Could not read library file: {e}")

        if not isinstance(records, list):
            raise LibraryImportError(
                f"Library file must contain a JSON array, got {type(records).__name__}"
            )

        return self.merge_import(records)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def select(self, track_id: str) -> LibraryTrack:
        """
        Make a track the current selection and persist the choice.

        Raises:
            KeyError: If no track has this id
        """
        track = self.get(track_id)
        if track is None:
            raise KeyError(track_id)

        self._commit_selection(track_id)
        return track

    def clear_selection(self) -> None:
        self._commit_selection(None)

    @property
    def selected(self) -> Optional[LibraryTrack]:
        if self.selected_id is None:
            return None
        return self.get(self.selected_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, track_id: str) -> Optional[LibraryTrack]:
        for track in self.tracks:
            if track.id == track_id:
                return track
        return None

    def export_all(self) -> bytes:
        """Serialize the whole library, in stored order, as a JSON array."""
        return _serialize(self.tracks)

    def sort_by(self, field: str = "dateAdded", direction: str = "desc") -> List[LibraryTrack]:
        """
        Return the library sorted for display.

        Args:
            field: One of "dateAdded", "bpm", "fileName", "key"
            direction: "asc" or "desc"

        Returns:
            Sorted copy; stored order is not changed

        Raises:
            ValueError: On an unknown field or direction
        """
        if field not in SORT_FIELDS:
            raise ValueError(f"Cannot sort by {field!r}; choose one of {list(SORT_FIELDS)}")
        if direction not in SORT_DIRECTIONS:
            raise ValueError(f"Sort direction must be 'asc' or 'desc', got {direction!r}")

        return sorted(self.tracks, key=_sort_key(field), reverse=direction == "desc")

    def suggestions(self, limit: Optional[int] = None) -> List[LibraryTrack]:
        """
        Compatible tracks for the current selection.

        Args:
            limit: Keep only the first N suggestions (None keeps all)

        Returns:
            Suggestions in library order; empty when nothing is selected
        """
        target = self.selected
        if target is None:
            return []

        found = get_suggestions(target, self.tracks)
        return found if limit is None else found[:limit]

    def stats(self) -> Dict[str, Any]:
        """
        Library statistics.

        Returns:
            Dictionary with track count and rounded mean BPM (0 when empty)
        """
        total = len(self.tracks)
        # Half rounds up
        avg_bpm = math.floor(sum(t.bpm for t in self.tracks) / total + 0.5) if total else 0
        return {
            "total_tracks": total,
            "avg_bpm": avg_bpm,
        }
