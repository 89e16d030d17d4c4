import io

import pytest
from PIL import Image

from country_api.services.image_generator import (
    IMAGE_SIZE,
    PillowSummaryRenderer,
    SummaryData,
    SummaryEntry,
    write_summary_image,
)


class StubRenderer:
    def __init__(self, payload=b"stub-png"):
        self.payload = payload
        self.seen = []

    def render(self, summary):
        self.seen.append(summary)
        return self.payload


def make_summary():
    top = (SummaryEntry("USA", 123456.789), SummaryEntry("Atlantis", None))
    return SummaryData(total=250, refreshed_at="2025-10-22T10:00:00+00:00", top=top)


def test_summary_lines_format_gdp_and_missing_values():
    assert make_summary().lines() == [
        "Total countries: 250",
        "Top 5 GDPs:",
        "USA: 123456.79",
        "Atlantis: N/A",
        "Last refreshed: 2025-10-22T10:00:00+00:00",
    ]


def test_from_countries_reads_name_and_gdp():
    class C:
        def __init__(self, name, estimated_gdp):
            self.name = name
            self.estimated_gdp = estimated_gdp

    summary = SummaryData.from_countries(2, [C("A", 1000), C("B", None)], "now")
    assert summary.top == (SummaryEntry("A", 1000), SummaryEntry("B", None))


def test_pillow_renderer_produces_fixed_size_png():
    data = PillowSummaryRenderer().render(make_summary())
    assert data.startswith(b"\x89PNG")
    with Image.open(io.BytesIO(data)) as img:
        assert img.size == IMAGE_SIZE
        assert img.format == "PNG"


def test_write_summary_image_overwrites_previous(tmp_path):
    path = tmp_path / "cache" / "summary.png"
    write_summary_image(make_summary(), path, StubRenderer(b"first"))
    write_summary_image(make_summary(), path, StubRenderer(b"second"))
    assert path.read_bytes() == b"second"


def test_write_summary_image_defaults_to_pillow(tmp_path):
    path = write_summary_image(make_summary(), tmp_path / "summary.png")
    assert path.read_bytes().startswith(b"\x89PNG")


def test_renderer_failure_propagates(tmp_path):
    class Broken:
        def render(self, summary):
            raise RuntimeError("no fonts")

    with pytest.raises(RuntimeError):
        write_summary_image(make_summary(), tmp_path / "summary.png", Broken())
    assert not (tmp_path / "summary.png").exists()
