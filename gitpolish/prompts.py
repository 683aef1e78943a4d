"""Prompt templates sent to the LLM."""

REFORMAT_CHECKLIST = """\
Reformat the checklist below into markdown using only these line types:
- "# Section" or "## Section" headings for categories
- "### Subsection" headings for sub-categories
- "- [ ] task" lines, one actionable task per line

Keep every task from the input, in the same order. Do not add commentary,
code fences, priorities, or explanations.

Checklist:
{checklist}
"""

ENHANCE_TASK = """\
You are writing a GitHub issue for the task below.

Task: {task}
Section: {section}
Subsection: {subsection}

Write the issue body in markdown with three parts:
1. An enhanced description of what needs to be done and why.
2. Concrete action steps as a checklist.
3. Considerations: risks, edge cases, and how to verify the work.

Return only the issue body.
"""

GENERATE_README = """\
Write a complete README.md for the GitHub repository {full_name}.

Description: {description}
Primary language: {language}
Stars: {stars}  Forks: {forks}
Top-level files:
{files}

Current README:
{readme}

Cover: project overview, features, installation, usage with examples,
configuration, contributing, and license. Return only the markdown.
"""

REGENERATE_README = """\
Revise the README below according to the user's suggestions. Keep everything
that the suggestions do not ask to change. Return only the markdown.

Suggestions:
{suggestions}

README:
{readme}
"""

GENERATE_DESCRIPTION = """\
Write a one-sentence GitHub repository description (at most {limit}
characters, no emoji, no quotes) for {full_name}, based on its README:

{readme}
"""

GENERATE_CHECKLIST = """\
Create an actionable improvement checklist for the GitHub repository {full_name}.

Description: {description}
Primary language: {language}
Top-level files:
{files}

README:
{readme}

Organise it under "## Category" headings (documentation, code quality, testing,
project management, community, performance) with "- [ ] task" lines, one
specific task per line. Return only the markdown checklist.
"""
