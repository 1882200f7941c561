from typing import Any, Mapping, Sequence

from vqgrid.utils.formatting import format_for_markdown


def generate_markdown_table(rows: Sequence[Mapping[str, Any]]) -> str:
    """Render rows as a GitHub-flavoured markdown table.

    The columns are taken from the first row; private columns (those
    starting with an underscore) are left out.
    """
    if not rows:
        return ""

    columns = [c for c in rows[0].keys() if not c.startswith("_")]
    lines = [
        "| " + " | ".join(columns) + " |",
        "| " + " | ".join("---" for _ in columns) + " |",
    ]
    for row in rows:
        cells = []
        for col in columns:
            value = row.get(col)
            if value is None:
                cells.append("")
                continue
            cells.append(
                format_for_markdown(value)
                .replace("|", "\\|")
                .replace("\n", "<br>")
                .replace("\r", "")
            )
        lines.append("| " + " | ".join(cells) + " |")
    return "\n".join(lines)
