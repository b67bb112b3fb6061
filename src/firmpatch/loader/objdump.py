"""Splitter for ``objdump -s`` output."""

_SECTION_HEADER = "Contents of section "


def split_section_contents(output: str) -> dict[str, str]:
    """Split objdump -s output into a section name -> dump text mapping.

    Only lines following a ``Contents of section <name>:`` header are kept;
    sections with no content lines are omitted.
    """
    sections: dict[str, str] = {}
    current: str | None = None
    lines: list[str] = []

    for line in output.splitlines():
        if line.startswith(_SECTION_HEADER):
            if current is not None and lines:
                sections[current] = "\n".join(lines) + "\n"
            current = line[len(_SECTION_HEADER) :].rstrip().rstrip(":")
            lines = []
        elif current is not None and " " in line:
            lines.append(line)

    if current is not None and lines:
        sections[current] = "\n".join(lines) + "\n"

    return sections
