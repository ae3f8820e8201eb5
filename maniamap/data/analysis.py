import numpy as np
from typing import Optional, Sequence

from maniamap.core.parser import HitObject, ParsedMap

DEFAULT_DENSITY_WINDOW_MS = 1000


def note_times(hit_objects: Sequence[HitObject]) -> np.ndarray:
    return np.array([obj.time for obj in hit_objects], dtype=np.int64)


def column_counts(hit_objects: Sequence[HitObject], key_count: int) -> np.ndarray:
    columns = np.array([obj.column for obj in hit_objects], dtype=np.int64)
    # out of range columns are not counted anywhere
    columns = columns[(columns >= 0) & (columns < key_count)]
    return np.bincount(columns, minlength=key_count)


def hold_durations(hit_objects: Sequence[HitObject]) -> np.ndarray:
    return np.array(
        [obj.hold_duration for obj in hit_objects if obj.is_long_note],
        dtype=np.int64
    )


def note_density(beatmap: ParsedMap, window_ms: int = DEFAULT_DENSITY_WINDOW_MS) -> np.ndarray:
    """
    Count note onsets per fixed window from 0 up to the map duration.

    The last window is closed, so a note sitting exactly on the duration
    still lands in it.
    """
    if window_ms <= 0:
        raise ValueError(f"window_ms must be positive, got {window_ms}")
    if beatmap.note_count == 0:
        return np.zeros(0, dtype=np.int64)

    num_windows = max(1, int(np.ceil(beatmap.duration / window_ms)))
    edges = np.arange(num_windows + 1, dtype=np.float64) * window_ms
    counts, _ = np.histogram(note_times(beatmap.hit_objects), bins=edges)
    return counts


def dominant_bpm(beatmap: ParsedMap) -> Optional[float]:
    # bpm of the uninherited point that stays active the longest
    red_lines = [tp for tp in beatmap.timing_points if tp.bpm is not None]
    if not red_lines:
        return None

    starts = np.array([tp.time for tp in red_lines], dtype=np.float64)
    end = max(float(beatmap.duration), starts[-1])
    ends = np.append(starts[1:], end)
    spans = ends - starts

    best = int(np.argmax(spans))
    return red_lines[best].bpm


def to_feature_array(hit_objects: Sequence[HitObject], key_count: int) -> np.ndarray:
    # time_s, end_time_s, column (normalized), is_long_note
    if not hit_objects:
        return np.zeros((0, 4), dtype=np.float32)

    return np.stack([
        np.array([
            obj.time / 1000.0,
            obj.end_time / 1000.0,
            obj.column / key_count,
            float(obj.is_long_note),
        ], dtype=np.float32)
        for obj in hit_objects
    ])
