from sys import argv

from statement_grid import extract_document, load_guides
from statement_grid.export import rows_to_markdown


def main(args: list[str]) -> None:
    input_file = args[1]
    page_number = int(args[2])
    selections, links = load_guides(args[3]) if len(args) > 3 else ({}, {})
    [result] = extract_document(input_file, selections, links, pages=[page_number])
    if not result.ok:
        print(result.error)
        return
    for matrix in result.matrices:
        width = max((len(row) for row in matrix), default=0)
        print(rows_to_markdown([f"Col {i + 1}" for i in range(width)], matrix))


if __name__ == "__main__":
    main(argv)
