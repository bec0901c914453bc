import random

import pytest

from qaforge.core.chunk.boundary_planner import plan_boundaries
from qaforge.core.chunk.chunker import Chunker, chunk_document
from qaforge.core.errors import MalformedInput
from qaforge.core.parse.heading_index import build_heading_index
from qaforge.core.parse.structure_detector import StructureDetector
from qaforge.core.parse.toc_builder import build_toc, flatten_toc, toc_to_markdown
from qaforge.models.chunk import HeadingRecord


def filler(n: int) -> str:
    """n characters of plain prose ending in a newline, never starting a line with '#'."""
    return ("lorem ipsum dolor sit amet " * (n // 10 + 1))[:n - 1] + "\n"


def scenario_document() -> str:
    # 3,400 characters, headings at offsets 0, 1200, 2500 with levels 1, 2, 1
    h1, h2, h3 = "# Intro\n", "## Details\n", "# Summary\n"
    return (
        h1 + filler(1200 - len(h1))
        + h2 + filler(2500 - 1200 - len(h2))
        + h3 + filler(3400 - 2500 - len(h3))
    )


def headings_at(*offsets):
    return [HeadingRecord(level=1, title=f"h{o}", offset=o) for o in offsets]


# --- Heading index ---

def test_heading_index_levels_and_offsets():
    text = "# One\nbody\n### Three\nmore\n## Two ##\n"
    headings = build_heading_index(text)

    assert [(h.level, h.title) for h in headings] == [(1, "One"), (3, "Three"), (2, "Two")]
    assert [h.offset for h in headings] == [0, 11, 26]
    for h in headings:
        assert text[h.offset] == "#"


def test_heading_index_ignores_non_headings():
    text = (
        "#NoSpace\n"
        "####### seven markers\n"
        "#   \n"
        "```\n"
        "# inside code\n"
        "```\n"
        "~~~python\n"
        "## also code\n"
        "~~~\n"
        "# Real\n"
    )
    headings = build_heading_index(text)

    assert [h.title for h in headings] == ["Real"]
    assert headings[0].offset == text.index("# Real")


def test_heading_index_crlf_offsets():
    text = "# A\r\ntext\r\n## B\r\n"
    headings = build_heading_index(text)

    assert [h.title for h in headings] == ["A", "B"]
    assert headings[1].offset == text.index("## B")


def test_heading_index_empty():
    assert build_heading_index("") == []
    assert build_heading_index("no headings here\njust text") == []


# --- Boundary planner ---

def test_planner_prefers_first_heading_in_window():
    text = "x" * 3000
    assert plan_boundaries(text, headings_at(500, 1600), 1000, 2000)[0] == (0, 1600)
    assert plan_boundaries(text, headings_at(1200, 1600), 1000, 2000)[0] == (0, 1200)


def test_planner_cuts_at_heading_exactly_at_max():
    text = "x" * 5000
    ranges = plan_boundaries(text, headings_at(2000), 1000, 2000)
    assert ranges[0] == (0, 2000)


def test_planner_forces_cut_without_headings():
    text = "x" * 5000
    ranges = plan_boundaries(text, [], 1000, 2000)
    assert ranges == [(0, 2000), (2000, 4000), (4000, 5000)]


def test_planner_keeps_tail_at_least_min():
    text = "x" * 4100
    ranges = plan_boundaries(text, [], 1000, 2000)

    assert ranges == [(0, 2000), (2000, 3100), (3100, 4100)]
    for start, end in ranges:
        assert 1000 <= end - start <= 2000


def test_planner_merges_short_tail_into_final_chunk():
    text = "x" * 2500
    # No cut can leave both sides at least 1500 long
    assert plan_boundaries(text, headings_at(2000), 1500, 2000) == [(0, 2500)]


def test_planner_edge_cases():
    assert plan_boundaries("", [], 10, 20) == []
    assert plan_boundaries("short", [], 10, 20) == [(0, 5)]
    assert plan_boundaries("x" * 15, [], 10, 20) == [(0, 15)]


@pytest.mark.parametrize("min_len,max_len", [(0, 10), (-5, 10), (20, 10), (10, -1)])
def test_planner_rejects_bad_window(min_len, max_len):
    with pytest.raises(MalformedInput):
        plan_boundaries("some text", [], min_len, max_len)


# --- TOC ---

def test_toc_non_monotonic_levels():
    levels = [3, 1, 2, 2, 1, 3]
    headings = [HeadingRecord(level=lvl, title=t, offset=i * 10) for i, (lvl, t) in enumerate(zip(levels, "abcdef"))]
    forest = build_toc(headings)

    assert [n.title for n in forest] == ["a", "b", "e"]
    assert [c.title for c in forest[1].children] == ["c", "d"]
    assert [c.title for c in forest[2].children] == ["f"]
    assert flatten_toc(forest) == [(h.level, h.title) for h in headings]


def test_toc_markdown_rendering():
    text = "# A\n## B\n### C\n# D\n"
    forest = build_toc(build_heading_index(text))

    assert toc_to_markdown(forest) == "- A\n  - B\n    - C\n- D"
    assert toc_to_markdown(forest, nested=False) == "# A\n## B\n### C\n# D"
    assert toc_to_markdown([]) == ""


# --- Section paths ---

def test_section_paths_skip_levels_like_the_toc():
    text = "# A\nx\n### C\ny\n### D\nz\n## E\nw\n"
    headings = build_heading_index(text)
    detector = StructureDetector(headings)

    assert detector.section_path_at(0) == "A"
    assert detector.section_path_at(text.index("### C")) == "A > C"
    assert detector.section_path_at(text.index("### D")) == "A > D"
    assert detector.section_path_at(text.index("z")) == "A > D"
    assert detector.section_path_at(text.index("## E")) == "A > E"

    forest = build_toc(headings)
    assert [c.title for c in forest[0].children] == ["C", "D", "E"]


def test_section_path_before_first_heading():
    detector = StructureDetector(build_heading_index("intro\n# A\n"))
    assert detector.section_path_at(0) is None


# --- Chunk assembly ---

def test_scenario_document_two_chunks():
    doc = scenario_document()
    assert len(doc) == 3400
    assert [(h.level, h.offset) for h in build_heading_index(doc)] == [(1, 0), (2, 1200), (1, 2500)]

    result = chunk_document(doc, 1500, 2000, source_file_name="guide.md")

    assert len(result.chunks) == 2
    first, second = result.chunks
    assert 1500 <= first.size <= 2000
    assert "## Details" in first.content
    assert first.content + second.content == doc
    assert second.size >= 1500

    assert [c.name for c in result.chunks] == ["guide-part-1", "guide-part-2"]
    assert [c.ordinal for c in result.chunks] == [1, 2]
    assert first.section_path == "Intro"
    assert second.section_path == "Intro > Details"

    assert [n.title for n in result.toc] == ["Intro", "Summary"]
    assert [c.title for c in result.toc[0].children] == ["Details"]
    assert result.toc[1].children == []


def test_chunk_document_is_deterministic():
    doc = scenario_document() * 3
    first = chunk_document(doc, 800, 1200)
    second = chunk_document(doc, 800, 1200)

    assert [c.content for c in first.chunks] == [c.content for c in second.chunks]
    assert first.toc == second.toc


def test_chunk_document_properties_on_generated_documents():
    rng = random.Random(7)
    for _ in range(25):
        parts = []
        for _ in range(rng.randint(0, 12)):
            if rng.random() < 0.6:
                parts.append("#" * rng.randint(1, 4) + f" Section {rng.randint(1, 99)}\n")
            parts.append(filler(rng.randint(2, 900)))
        doc = "".join(parts)
        min_len = rng.randint(100, 600)
        max_len = min_len + rng.randint(0, 600)

        chunks = chunk_document(doc, min_len, max_len).chunks

        assert "".join(c.content for c in chunks) == doc
        assert all(c.size == len(c.content) for c in chunks)
        for c in chunks[:-1]:
            assert min_len <= c.size <= max_len
        if chunks and len(doc) >= min_len:
            assert chunks[-1].size >= min_len


def test_chunk_document_empty_and_short():
    assert chunk_document("", 10, 20).chunks == []

    result = chunk_document("# Tiny\nbody\n", 100, 200)
    assert len(result.chunks) == 1
    assert result.chunks[0].content == "# Tiny\nbody\n"
    assert [n.title for n in result.toc] == ["Tiny"]


def test_chunker_uses_configured_window_and_rejects_bad_one():
    chunker = Chunker(min_len=50, max_len=60)
    result = chunker.chunk_document("y" * 130, "notes.txt")
    assert [c.size for c in result.chunks] == [60, 70]

    with pytest.raises(MalformedInput):
        chunk_document("# A\nbody", 0, 10)
