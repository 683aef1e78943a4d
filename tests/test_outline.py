"""Tests for the checklist line classifier, outline parser and AI normalisation."""

import pytest

from gitpolish.errors import EmptyChecklistError, LlmError
from gitpolish.outline import LineKind, classify_line, normalize_outline, parse_outline

_SAMPLE = """\
# Documentation
- [ ] Add usage examples
## Code Quality
- [ ] Add linting
- [x] Remove dead code
"""


class TestClassifyLine:
    @pytest.mark.parametrize(
        ("line", "depth", "text"),
        [
            ("# Docs", 1, "Docs"),
            ("## Code Quality", 2, "Code Quality"),
            ("#### Deep", 4, "Deep"),
            ("   ### Indented", 3, "Indented"),
            ("## Closed heading ##", 2, "Closed heading"),
            ("# C# support", 1, "C# support"),
        ],
    )
    def test_headings(self, line: str, depth: int, text: str) -> None:
        parsed = classify_line(line)
        assert parsed.kind == LineKind.HEADING
        assert parsed.depth == depth
        assert parsed.text == text

    @pytest.mark.parametrize(
        ("line", "text"),
        [
            ("- [ ] Add tests", "Add tests"),
            ("- [x] Done thing", "Done thing"),
            ("- [X] Upper case", "Upper case"),
            ("-[ ] No space", "No space"),
            ("  - [ ] Nested item", "Nested item"),
        ],
    )
    def test_tasks(self, line: str, text: str) -> None:
        parsed = classify_line(line)
        assert parsed.kind == LineKind.TASK
        assert parsed.text == text

    @pytest.mark.parametrize(
        "line",
        ["", "Just prose", "- plain bullet", "* [ ] star bullet", "#NoSpace", "####### seven", "- [y] odd"],
    )
    def test_ignored(self, line: str) -> None:
        assert classify_line(line).kind == LineKind.IGNORED


class TestParseOutline:
    def test_sample_checklist(self) -> None:
        outline = parse_outline(_SAMPLE)

        assert [s.title for s in outline.sections] == ["Documentation", "Code Quality"]
        docs, quality = outline.sections
        assert docs.tasks == ["Add usage examples"]
        assert docs.subsections == []
        # "##" after "#" is a sibling section, not a subsection
        assert quality.tasks == ["Add linting", "Remove dead code"]
        assert quality.subsections == []

    def test_deep_headings_become_subsections(self) -> None:
        text = "## Testing\n- [ ] Pick a runner\n### Unit\n- [ ] Cover parser\n#### Integration\n- [ ] Hit the API\n"
        (section,) = parse_outline(text).sections
        assert section.tasks == ["Pick a runner"]
        assert [(s.title, s.tasks) for s in section.subsections] == [
            ("Unit", ["Cover parser"]),
            ("Integration", ["Hit the API"]),
        ]

    def test_section_heading_closes_subsection(self) -> None:
        text = "# A\n### A1\n- [ ] one\n# B\n- [ ] two\n"
        a, b = parse_outline(text).sections
        assert a.subsections[0].tasks == ["one"]
        assert b.tasks == ["two"]

    def test_tasks_before_any_heading(self) -> None:
        outline = parse_outline("- [ ] orphan\n# Later\n- [ ] kept\n")
        assert outline.sections[0].title == ""
        assert outline.sections[0].tasks == ["orphan"]
        assert outline.sections[1].tasks == ["kept"]

    def test_subsection_before_any_section(self) -> None:
        (section,) = parse_outline("### Sub\n- [ ] task\n").sections
        assert section.title == ""
        assert section.subsections[0].tasks == ["task"]

    def test_iter_tasks_preserves_order(self) -> None:
        text = "# S\n- [ ] a\n- [ ] b\n### Sub\n- [ ] c\n# T\n- [ ] d\n"
        tasks = [task for _, _, task in parse_outline(text).iter_tasks()]
        assert tasks == ["a", "b", "c", "d"]

    def test_ignores_prose_and_empty_tasks(self) -> None:
        text = "# S\nSome intro text.\n- [ ]   \n- [ ] real\n"
        outline = parse_outline(text)
        assert outline.task_count == 1

    def test_empty_text(self) -> None:
        assert parse_outline("").task_count == 0


class TestNormalizeOutline:
    def test_uses_reformatted_text(self, fake_llm) -> None:
        llm = fake_llm(["## Docs\n- [ ] Write a README\n"])
        outline = normalize_outline("we need a readme", llm)
        assert outline.sections[0].title == "Docs"
        assert outline.sections[0].tasks == ["Write a README"]
        assert "we need a readme" in llm.prompts[0]

    def test_falls_back_to_raw_text_when_llm_fails(self, fake_llm) -> None:
        llm = fake_llm([LlmError("quota exceeded")])
        outline = normalize_outline(_SAMPLE, llm)
        assert outline.task_count == 3

    def test_falls_back_to_raw_text_when_reply_has_no_tasks(self, fake_llm) -> None:
        llm = fake_llm(["Sure! Here is your checklist."])
        outline = normalize_outline(_SAMPLE, llm)
        assert [s.title for s in outline.sections] == ["Documentation", "Code Quality"]

    def test_empty_everywhere_raises(self, fake_llm) -> None:
        llm = fake_llm(["Nothing to do here."])
        with pytest.raises(EmptyChecklistError):
            normalize_outline("A paragraph without any checklist lines.", llm)
