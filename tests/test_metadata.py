from maniamap.core.parser import MapMetadata, find_section, parse_metadata


def test_reads_all_three_sections(sample_osu):
    meta = parse_metadata(sample_osu)
    assert meta.audio_filename == "audio.mp3"
    assert meta.mode == 3
    assert meta.is_mania
    assert meta.title == "Sample Song"
    assert meta.artist == "Some Artist"
    assert meta.creator == "mapper"
    assert meta.version == "4K Hard"
    assert meta.circle_size == 4.0
    assert meta.hp_drain_rate == 8.0
    assert meta.overall_difficulty == 7.5


def test_missing_sections_leave_fields_unset(make_osu):
    meta = parse_metadata(make_osu(HitObjects="64,192,0,1,0"))
    assert meta == MapMetadata()
    assert meta.title is None
    assert meta.mode is None
    assert meta.circle_size is None


def test_keys_and_headers_are_case_insensitive():
    text = "[metadata]\ntitle:  lower case  \n[DIFFICULTY]\ncirclesize:7\n"
    meta = parse_metadata(text)
    assert meta.title == "lower case"
    assert meta.circle_size == 7.0


def test_title_does_not_pick_up_title_unicode():
    text = "[Metadata]\nTitleUnicode:Unicode\nTitle:Plain\n"
    assert parse_metadata(text).title == "Plain"


def test_bad_numeric_value_does_not_block_siblings(make_osu):
    text = make_osu(
        General="Mode: x\nAudioFilename: a.ogg",
        Difficulty="CircleSize:5.5.5\nHPDrainRate:6\nOverallDifficulty:8",
    )
    meta = parse_metadata(text)
    assert meta.mode is None
    assert meta.circle_size is None
    assert meta.audio_filename == "a.ogg"
    assert meta.hp_drain_rate == 6.0
    assert meta.overall_difficulty == 8.0


def test_empty_value_is_unset(make_osu):
    meta = parse_metadata(make_osu(Metadata="Title:\nArtist:Someone"))
    assert meta.title is None
    assert meta.artist == "Someone"


def test_section_stops_at_next_header():
    text = "[Metadata]\nArtist:A\n[Editor]\nTitle:not metadata\n"
    meta = parse_metadata(text)
    assert meta.artist == "A"
    assert meta.title is None


def test_find_section_handles_crlf():
    text = "[General]\r\nMode: 3\r\n[Metadata]\r\nTitle:T\r\n"
    body = find_section(text, "general")
    assert "Mode: 3" in body
    assert "Title" not in body
    meta = parse_metadata(text)
    assert meta.mode == 3
    assert meta.title == "T"


def test_find_section_absent():
    assert find_section("[General]\nMode: 3\n", "Events") is None


def test_overflowing_numbers_are_unset(make_osu):
    text = make_osu(
        General="Mode: " + "9" * 5000,
        Difficulty="CircleSize:" + "9" * 400 + "\nOverallDifficulty:8",
    )
    meta = parse_metadata(text)
    assert meta.circle_size is None
    assert meta.overall_difficulty == 8.0
