import sys
import os
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import logging

from maniamap.core.parser import Parser, MissingSectionError
from maniamap.data.analysis import column_counts, dominant_bpm, note_density


def print_summary(beatmap):
    meta = beatmap.metadata
    print(f"{meta.artist or '?'} - {meta.title or '?'} [{meta.version or '?'}] by {meta.creator or '?'}")
    print(f"{'='*60}")
    print(f"  keys: {beatmap.key_count}K")
    print(f"  notes: {beatmap.note_count} ({beatmap.long_note_count} long)")
    print(f"  duration: {beatmap.duration / 1000.0:.2f}s")
    print(f"  timing points: {len(beatmap.timing_points)}")

    bpm = dominant_bpm(beatmap)
    if bpm is not None:
        print(f"  bpm: {bpm:.1f}")

    density = note_density(beatmap)
    if len(density) > 0:
        print(f"  peak density: {density.max()} notes/s")

    counts = column_counts(beatmap.hit_objects, beatmap.key_count)
    for col, count in enumerate(counts):
        print(f"    column {col}: {count}")


def main():
    if len(sys.argv) < 2:
        print("usage: summarize_map.py <beatmap.osu> [-v]")
        sys.exit(2)

    if "-v" in sys.argv[2:]:
        logging.basicConfig(level=logging.DEBUG)

    try:
        parser = Parser(sys.argv[1]).parse()
    except MissingSectionError as e:
        print(f"[ERROR] not a playable beatmap: {e}")
        sys.exit(1)
    except ValueError as e:
        print(f"[ERROR] {e}")
        sys.exit(1)

    print_summary(parser.beatmap)


if __name__ == "__main__":
    main()
