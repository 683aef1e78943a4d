"""Checklist outline parsing.

Lines are classified one at a time as a heading, a checklist task, or ignored:

    # Title / ## Title     depth <= 2 -> new section (closes the open subsection)
    ### Title and deeper   new subsection under the current section
    - [ ] task / - [x] task  task under the open subsection, else the section

"## Code Quality" after "# Documentation" opens a sibling section rather than a
nested one. Checklists produced by the reformatting prompt rely on this.
"""

import logging
import re
from enum import Enum
from typing import NamedTuple

from gitpolish.clients.llm import LlmClient
from gitpolish.errors import EmptyChecklistError, LlmError
from gitpolish.models import ChecklistOutline, Section, Subsection
from gitpolish.prompts import REFORMAT_CHECKLIST

logger = logging.getLogger(__name__)

SECTION_MAX_DEPTH = 2

_HEADING_RE = re.compile(r"^(#{1,6})\s+(.*?)(?:\s+#+)?\s*$")
_TASK_RE = re.compile(r"^-\s*\[[xX\s]\]\s*(.*?)\s*$")


class LineKind(Enum):
    HEADING = "heading"
    TASK = "task"
    IGNORED = "ignored"


class ParsedLine(NamedTuple):
    kind: LineKind
    text: str = ""
    depth: int = 0


def classify_line(line: str) -> ParsedLine:
    stripped = line.strip()
    if match := _HEADING_RE.match(stripped):
        return ParsedLine(LineKind.HEADING, match.group(2), len(match.group(1)))
    if match := _TASK_RE.match(stripped):
        return ParsedLine(LineKind.TASK, match.group(1))
    return ParsedLine(LineKind.IGNORED)


def parse_outline(text: str) -> ChecklistOutline:
    outline = ChecklistOutline()
    section: Section | None = None
    subsection: Subsection | None = None

    def current_section() -> Section:
        nonlocal section
        if section is None:
            section = Section(title="")
            outline.sections.append(section)
        return section

    for line in text.splitlines():
        parsed = classify_line(line)
        match parsed.kind:
            case LineKind.HEADING if parsed.depth <= SECTION_MAX_DEPTH:
                section = Section(title=parsed.text)
                outline.sections.append(section)
                subsection = None
            case LineKind.HEADING:
                subsection = Subsection(title=parsed.text)
                current_section().subsections.append(subsection)
            case LineKind.TASK if parsed.text:
                if subsection is not None:
                    subsection.tasks.append(parsed.text)
                else:
                    current_section().tasks.append(parsed.text)

    return outline


def normalize_outline(raw_text: str, llm: LlmClient) -> ChecklistOutline:
    """Reformat raw_text with the LLM and parse it, falling back to parsing raw_text as-is.

    Raises EmptyChecklistError when neither yields a single task.
    """
    try:
        outline = parse_outline(llm.complete(REFORMAT_CHECKLIST.format(checklist=raw_text)))
    except LlmError as exc:
        logger.warning("Checklist reformatting failed, parsing the original text: %s", exc)
        outline = ChecklistOutline()

    if outline.task_count == 0:
        logger.info("Reformatted checklist has no tasks, parsing the original text")
        outline = parse_outline(raw_text)
    if outline.task_count == 0:
        raise EmptyChecklistError()
    logger.debug("Outline: %d sections, %d tasks", len(outline.sections), outline.task_count)
    return outline
