import sys

from statement_grid import extract_document, load_guides


def count_tables(pdf_path, guides_path=None):
    selections, links = load_guides(guides_path) if guides_path else ({}, {})
    total_tables = 0
    for result in extract_document(pdf_path, selections, links):
        if not result.ok:
            print(f"Page {result.page}: error reading glyphs ({result.error})")
            continue
        shapes = ", ".join(f"{r}x{c}" for r, c in (t.shape for t in result.tables))
        print(f"Page {result.page}: {len(result.tables)} tables [{shapes}], {len(result.loose)} loose guides")
        total_tables += len(result.tables)
    print(f"\nTotal tables detected: {total_tables}")


if __name__ == "__main__":
    if len(sys.argv) not in (2, 3):
        print("Usage: python count_tables.py input.pdf [guides.json]")
        sys.exit(1)
    count_tables(*sys.argv[1:])
