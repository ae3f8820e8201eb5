import logging
import math
import re
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

DEFAULT_KEY_COUNT = 4
PLAYFIELD_WIDTH = 512
MANIA_MODE = 3


class HitObjectType:
    NOTE = 1
    HOLD = 128


class MissingSectionError(ValueError):
    """Raised when a section the parse cannot do without is absent."""

    def __init__(self, section: str) -> None:
        super().__init__(f"Section [{section}] not found in .osu content")
        self.section = section


@dataclass(frozen=True)
class HitObject: # single hitobject in beatmap
    x: int
    y: int
    time: int
    type: int
    hit_sound: int
    object_params: Optional[str] = None
    hit_sample: Optional[str] = None
    column: int = 0
    is_long_note: Optional[bool] = None
    end_time: Optional[int] = None

    def __post_init__(self):
        if self.is_long_note is None:
            object.__setattr__(self, "is_long_note", self.is_hold())
        if self.end_time is None:
            object.__setattr__(self, "end_time", self.time)

    def is_note(self) -> bool:
        return (self.type & HitObjectType.NOTE) != 0

    def is_hold(self) -> bool:
        return (self.type & HitObjectType.HOLD) != 0

    @property
    def hold_duration(self) -> int:
        return self.end_time - self.time


@dataclass(frozen=True)
class TimingPoint:
    # 117245,-100,4,2,1,5,0,0
    # time, beat length (negative = sv scale), meter, sample set, sample index, volume, uninherited, effects
    time: float
    beat_length: float
    meter: int
    sample_set: int
    sample_index: int
    volume: int
    uninherited: bool
    effects: int

    @property
    def bpm(self) -> Optional[float]:
        if not self.uninherited or self.beat_length <= 0:
            return None
        return 60000.0 / self.beat_length

    @property
    def slider_velocity(self) -> float:
        if self.uninherited or self.beat_length >= 0:
            return 1.0
        return -100.0 / self.beat_length

    @property
    def kiai(self) -> bool:
        return (self.effects & 1) != 0


@dataclass(frozen=True)
class MapMetadata:
    title: Optional[str] = None
    artist: Optional[str] = None
    creator: Optional[str] = None
    version: Optional[str] = None
    audio_filename: Optional[str] = None
    mode: Optional[int] = None
    circle_size: Optional[float] = None
    hp_drain_rate: Optional[float] = None
    overall_difficulty: Optional[float] = None

    @property
    def is_mania(self) -> bool:
        return self.mode == MANIA_MODE


@dataclass(frozen=True)
class ParsedMap:
    hit_objects: Tuple[HitObject, ...]
    timing_points: Tuple[TimingPoint, ...]
    metadata: MapMetadata
    note_count: int
    long_note_count: int
    duration: int
    key_count: int


_NUMBER = r"-?\d+(?:\.\d+)?"
TIMING_POINT_RE = re.compile(
    rf"({_NUMBER}),({_NUMBER}),(\d+),(\d+),(\d+),(\d+),([01]),(\d+)", re.ASCII
)
HIT_OBJECT_RE = re.compile(
    r"(\d+),(\d+),(\d+),(\d+),(\d+)(?:,([^,]+))?(?:,(.+))?", re.ASCII
)
# endTime:normalSet:additionSet:index:volume:filename
HOLD_PARAMS_RE = re.compile(r"(\d+):(\d+):(\d+):(\d+):(.+)", re.ASCII)
INTEGER_RE = re.compile(r"\d+", re.ASCII)
DECIMAL_RE = re.compile(r"[\d.]+", re.ASCII)

# section -> ((attribute, key, kind), ...)
METADATA_FIELDS = (
    ("General", (
        ("audio_filename", "AudioFilename", "str"),
        ("mode", "Mode", "int"),
    )),
    ("Metadata", (
        ("title", "Title", "str"),
        ("artist", "Artist", "str"),
        ("creator", "Creator", "str"),
        ("version", "Version", "str"),
    )),
    ("Difficulty", (
        ("circle_size", "CircleSize", "float"),
        ("hp_drain_rate", "HPDrainRate", "float"),
        ("overall_difficulty", "OverallDifficulty", "float"),
    )),
)


def find_section(osu_content: str, name: str) -> Optional[str]:
    """
    Return the body of the first [name] section, or None if there is no such header.

    The body runs from the line after the header up to the next line that
    starts with '[' (or the end of the text). Header names are matched
    case-insensitively.
    """
    header = re.search(
        rf"^[ \t]*\[{re.escape(name)}\][^\n]*", osu_content, re.IGNORECASE | re.MULTILINE
    )
    if header is None:
        return None

    body = osu_content[header.end():]
    next_header = re.search(r"^[ \t]*\[", body, re.MULTILINE)
    if next_header is not None:
        body = body[:next_header.start()]
    return body


def _content_lines(section: str) -> List[str]:
    lines = []
    for line in section.splitlines():
        line = line.strip()
        if not line or line.startswith("//") or line.startswith("["):
            continue
        lines.append(line)
    return lines


def _read_field(section: str, key: str, kind: str):
    match = re.search(
        rf"^[ \t]*{re.escape(key)}[ \t]*:(.*)$", section, re.IGNORECASE | re.MULTILINE
    )
    if match is None:
        return None

    value = match.group(1).strip()
    if not value:
        return None
    if kind == "str":
        return value

    pattern = INTEGER_RE if kind == "int" else DECIMAL_RE
    number = pattern.match(value)
    if number is None:
        logger.debug("ignoring non-numeric %s value %r", key, value)
        return None
    try:
        parsed = int(number.group()) if kind == "int" else float(number.group())
    except ValueError:
        logger.debug("ignoring malformed %s value %r", key, value)
        return None
    if kind == "float" and not math.isfinite(parsed):
        logger.debug("ignoring out of range %s value %r", key, value)
        return None
    return parsed


def parse_metadata(osu_content: str) -> MapMetadata:
    fields = {}
    for section_name, keys in METADATA_FIELDS:
        section = find_section(osu_content, section_name)
        if section is None:
            continue
        for attribute, key, kind in keys:
            value = _read_field(section, key, kind)
            if value is not None:
                fields[attribute] = value
    return MapMetadata(**fields)


def parse_timing_points(osu_content: str) -> List[TimingPoint]:
    section = find_section(osu_content, "TimingPoints")
    if section is None:
        return []

    timing_points = []
    for line in _content_lines(section):
        match = TIMING_POINT_RE.fullmatch(line)
        if match is None:
            logger.debug("skipping malformed timing point: %r", line)
            continue

        time, beat_length, meter, sample_set, sample_index, volume, uninherited, effects = match.groups()
        timing_points.append(TimingPoint(
            time=float(time),
            beat_length=float(beat_length),
            meter=int(meter),
            sample_set=int(sample_set),
            sample_index=int(sample_index),
            volume=int(volume),
            uninherited=uninherited == "1",
            effects=int(effects),
        ))

    timing_points.sort(key=lambda tp: tp.time)
    return timing_points


def _decode_end_time(time: int, is_long_note: bool, object_params: Optional[str]) -> int:
    if not is_long_note or not object_params:
        return time

    match = HOLD_PARAMS_RE.match(object_params)
    if match is None:
        return time

    end_time = int(match.group(1))
    # a release before the onset is treated as missing
    if end_time < time:
        return time
    return end_time


def parse_hit_objects(osu_content: str, key_count: int) -> List[HitObject]:
    section = find_section(osu_content, "HitObjects")
    if section is None:
        raise MissingSectionError("HitObjects")

    hit_objects = []
    for line in _content_lines(section):
        match = HIT_OBJECT_RE.fullmatch(line)
        if match is None:
            logger.debug("skipping malformed hit object: %r", line)
            continue

        x, y, time, type_, hit_sound, object_params, hit_sample = match.groups()
        x, time, type_ = int(x), int(time), int(type_)
        is_long_note = (type_ & HitObjectType.HOLD) != 0

        hit_objects.append(HitObject(
            x=x,
            y=int(y),
            time=time,
            type=type_,
            hit_sound=int(hit_sound),
            object_params=object_params,
            hit_sample=hit_sample,
            column=(x * key_count) // PLAYFIELD_WIDTH,
            is_long_note=is_long_note,
            end_time=_decode_end_time(time, is_long_note, object_params),
        ))

    hit_objects.sort(key=lambda obj: obj.time)
    return hit_objects


def resolve_key_count(circle_size: Optional[float]) -> int:
    # mania stores the key count in CircleSize
    if not circle_size or not math.isfinite(circle_size):
        return DEFAULT_KEY_COUNT
    key_count = int(circle_size)
    if key_count < 1:
        return DEFAULT_KEY_COUNT
    return key_count


def parse_osu_file(osu_content: str) -> ParsedMap:
    metadata = parse_metadata(osu_content)
    if metadata.mode is not None and not metadata.is_mania:
        logger.warning("beatmap mode is %d, not mania (%d); columns may be meaningless",
                       metadata.mode, MANIA_MODE)

    key_count = resolve_key_count(metadata.circle_size)
    hit_objects = parse_hit_objects(osu_content, key_count)
    timing_points = parse_timing_points(osu_content)

    long_note_count = sum(1 for obj in hit_objects if obj.is_long_note)
    duration = max((obj.end_time for obj in hit_objects), default=0)

    logger.info("parsed %d hit objects (%d long), %d timing points, %dK",
                len(hit_objects), long_note_count, len(timing_points), key_count)

    return ParsedMap(
        hit_objects=tuple(hit_objects),
        timing_points=tuple(timing_points),
        metadata=metadata,
        note_count=len(hit_objects),
        long_note_count=long_note_count,
        duration=duration,
        key_count=key_count,
    )


def organize_notes_by_column(hit_objects: Sequence[HitObject], key_count: int) -> List[List[HitObject]]:
    columns: List[List[HitObject]] = [[] for _ in range(key_count)]
    for obj in hit_objects:
        if 0 <= obj.column < key_count:
            columns[obj.column].append(obj)
    return columns


class Parser:
    def __init__(self, filepath):
        self.filepath = filepath
        self.beatmap: Optional[ParsedMap] = None

    def parse(self):
        try:
            # utf-8-sig so a BOM does not hide the first header
            with open(self.filepath, "r", encoding="utf-8-sig") as f:
                content = f.read()
        except (OSError, UnicodeDecodeError) as e:
            raise ValueError(f"Failed to read beatmap file: {e}")

        self.beatmap = parse_osu_file(content)
        return self

    def _require_beatmap(self) -> ParsedMap:
        if self.beatmap is None:
            raise ValueError("Beatmap has not been parsed yet")
        return self.beatmap

    @property
    def hit_objects(self) -> Tuple[HitObject, ...]:
        return self._require_beatmap().hit_objects

    @property
    def timing_points(self) -> Tuple[TimingPoint, ...]:
        return self._require_beatmap().timing_points

    @property
    def metadata(self) -> MapMetadata:
        return self._require_beatmap().metadata
