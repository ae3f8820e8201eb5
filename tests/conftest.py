import pytest

SAMPLE_OSU = """osu file format v14

[General]
AudioFilename: audio.mp3
AudioLeadIn: 0
PreviewTime: 12000
Mode: 3

[Metadata]
Title:Sample Song
TitleUnicode:Sample Song (Unicode)
Artist:Some Artist
Creator:mapper
Version:4K Hard
Source:
Tags:test

[Difficulty]
HPDrainRate:8
CircleSize:4
OverallDifficulty:7.5
ApproachRate:5

[TimingPoints]
2000,-50,4,2,1,60,0,1
0,500,4,2,0,70,1,0
1000,400,4,2,0,70,1,0

[HitObjects]
448,192,3000,1,0,0:0:0:0:
64,192,1000,1,0,0:0:0:0:
192,192,1500,128,0,2500:0:0:0:0:
320,192,2000,1,0,0:0:0:0:
"""


@pytest.fixture
def sample_osu():
    """Small well-formed 4K chart: three taps, one hold, three timing points."""
    return SAMPLE_OSU


@pytest.fixture
def sample_osu_path(tmp_path):
    path = tmp_path / "sample.osu"
    path.write_text(SAMPLE_OSU, encoding="utf-8")
    return str(path)


@pytest.fixture
def make_osu():
    """
    Build chart text from section bodies, e.g. make_osu(HitObjects="64,192,0,1,0").
    Sections are emitted in keyword order.
    """
    def _make(**sections):
        parts = ["osu file format v14", ""]
        for name, body in sections.items():
            parts.append(f"[{name}]")
            parts.append(body.strip("\n"))
            parts.append("")
        return "\n".join(parts)
    return _make
