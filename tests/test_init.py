import heartart


def test_public_exports_are_accessible() -> None:
    for name in heartart.__all__:
        assert hasattr(heartart, name), name


def test_top_level_helpers_cover_offline_flow() -> None:
    series = heartart.extract_bpm("BPM\n72\n75\n")
    prompt = heartart.synthesize(series, heartart.parse_color("green"))
    assert "green" in prompt
    assert heartart.__version__
