"""
Helpers for pointing at a position inside a migration script.
"""


def line_column_from_offset(text: str, offset: int) -> tuple[int, int]:
    """
    Convert a 0-based character offset into a 1-based (line, column).

    Offsets past the end are clamped to the end of the text.
    """
    offset = max(0, min(offset, len(text)))
    line = text.count("\n", 0, offset) + 1
    column = offset - (text.rfind("\n", 0, offset) + 1) + 1
    return line, column


def lines_before_and_after(
    text: str,
    line: int,
    before: int = 5,
    after: int = 5,
    line_numbers: bool = True,
) -> str:
    """
    Cut the lines around a 1-based line number out of text.

    Args:
        text: Script content
        line: Line to center on
        before: Number of lines to keep above it
        after: Number of lines to keep below it
        line_numbers: Prefix each line with its number

    Returns:
        The excerpt, newline separated
    """
    lines = text.splitlines()
    if not lines:
        return ""

    start = max(line - 1 - before, 0)
    end = min(line + after, len(lines))
    width = len(str(end))

    excerpt = []
    for number in range(start + 1, end + 1):
        content = lines[number - 1]
        if line_numbers:
            excerpt.append(f"{number:>{width}}: {content}")
        else:
            excerpt.append(content)
    return "\n".join(excerpt)
