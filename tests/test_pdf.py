"""Tests for PDF reading-order reflow and page snapshots."""

import base64

from guardian.ingestion.pdf import TextFragment, extract_pdf, reflow_fragments

PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


class TestReflowFragments:
    """Tests for the reading-order algorithm."""

    def test_higher_fragment_comes_first(self):
        """Greater y (higher on the page) precedes lower text."""
        text = reflow_fragments([
            TextFragment(x=10, y=100, text="lower"),
            TextFragment(x=10, y=700, text="upper"),
        ])
        assert text == "upper\nlower"

    def test_same_line_sorted_left_to_right(self):
        text = reflow_fragments([
            TextFragment(x=300, y=500, text="right"),
            TextFragment(x=50, y=500, text="left"),
        ])
        assert text == "left right"

    def test_small_vertical_jitter_stays_on_line(self):
        """Differences within the tolerance do not break the line."""
        text = reflow_fragments([
            TextFragment(x=10, y=500, text="a"),
            TextFragment(x=20, y=497, text="b"),
        ], tolerance=5.0)
        assert "\n" not in text

    def test_jump_beyond_tolerance_breaks_line(self):
        text = reflow_fragments([
            TextFragment(x=10, y=500, text="a"),
            TextFragment(x=10, y=494, text="b"),
        ], tolerance=5.0)
        assert text == "a\nb"

    def test_empty_page(self):
        assert reflow_fragments([]) == ""


class TestExtractPdf:
    """Tests for full PDF extraction with PyMuPDF."""

    def test_one_snapshot_per_page(self, make_pdf):
        data = make_pdf([[(72, 72, f"Page {n} body")] for n in range(1, 4)])
        result = extract_pdf(data)

        assert len(result.pages) == 3
        for snapshot in result.pages:
            assert snapshot.startswith("data:image/png;base64,")
            raw = base64.b64decode(snapshot.split(",", 1)[1])
            assert raw.startswith(PNG_SIGNATURE)

    def test_pages_beyond_cap_are_dropped(self, make_pdf):
        data = make_pdf([[(72, 72, f"Body {n}")] for n in range(1, 13)])
        result = extract_pdf(data, max_pages=10)

        assert len(result.pages) == 10
        assert "--- Page 10 ---" in result.text
        assert "--- Page 11 ---" not in result.text
        assert "Body 11" not in result.text

    def test_page_headers_in_order(self, make_pdf):
        data = make_pdf([[(72, 72, "alpha")], [(72, 72, "beta")]])
        text = extract_pdf(data).text

        assert text.index("--- Page 1 ---") < text.index("alpha")
        assert text.index("alpha") < text.index("--- Page 2 ---")
        assert text.index("--- Page 2 ---") < text.index("beta")

    def test_top_of_page_read_first(self, make_pdf):
        """Text drawn lower on the page is emitted after text drawn above it."""
        data = make_pdf([[(72, 400, "Footer clause"), (72, 100, "Header clause")]])
        text = extract_pdf(data).text

        assert text.index("Header clause") < text.index("Footer clause")

    def test_render_scale_enlarges_snapshot(self, make_pdf):
        data = make_pdf([[(72, 72, "scaled")]])
        small = _png_width(extract_pdf(data, scale=1.0).pages[0])
        large = _png_width(extract_pdf(data, scale=1.5).pages[0])
        assert abs(large - small * 1.5) <= 2


def _png_width(data_uri):
    raw = base64.b64decode(data_uri.split(",", 1)[1])
    return int.from_bytes(raw[16:20], "big")
