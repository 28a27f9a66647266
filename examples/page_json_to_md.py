"""Turn the page_NNN.json files written by ``statement-grid`` into markdown."""

import json
import sys
from pathlib import Path

from statement_grid.export import rows_to_markdown


def pages_to_md(output_dir, output_file):
    md_lines = []

    for page_file in sorted(Path(output_dir).glob("page_*.json")):
        page = json.loads(page_file.read_text(encoding="utf-8"))
        if page.get("error"):
            md_lines.append(f"## Page {page['page']}\n\n_{page['error']}_\n")
            continue

        for index, table in enumerate(page.get("tables", []), start=1):
            cells = table.get("cells") or []
            if not cells:
                continue
            md_lines.append(f"## Page {page['page']}, table {index}\n")
            # First detected row is treated as the header
            md_lines.append(rows_to_markdown(cells[0], cells[1:]))

        loose = page.get("loose", [])
        if loose:
            md_lines.append(f"_{len(loose)} guide(s) not attached to a table_\n")

    Path(output_file).write_text("\n".join(md_lines), encoding="utf-8")
    print(f"Markdown saved to {output_file}")


# Example usage
# pages_to_md("march_grid", "march.md")

if __name__ == "__main__":
    pages_to_md(sys.argv[1], sys.argv[2])
