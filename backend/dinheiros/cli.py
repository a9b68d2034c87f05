"""Command line utilities.

    dinheiros-utils extract <extractor-name> <file-path>

prints the plain text an extractor reads from a statement PDF, which is what
the text fixtures in the test suite are made of.
"""

import argparse
import sys
from typing import List, Optional

from dinheiros.errors import DinheirosError
from dinheiros.services.pdf_extractors import EXTRACTOR_REGISTRY, get_extractor


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dinheiros-utils", description="Dinheiros utilities")
    subparsers = parser.add_subparsers(dest="command", required=True)

    extract = subparsers.add_parser("extract", help="print the text extracted from a statement PDF")
    extract.add_argument("extractor", help=f"one of: {', '.join(EXTRACTOR_REGISTRY)}")
    extract.add_argument("file_path", help="path to the PDF file")
    return parser


def extract_command(extractor_name: str, file_path: str) -> int:
    extractor = get_extractor(extractor_name)
    if extractor is None:
        print(f"Unknown extractor: {extractor_name}", file=sys.stderr)
        return 1
    try:
        text = extractor.extract_text(file_path)
    except DinheirosError as e:
        print(f"Error extracting text: {e.message}", file=sys.stderr)
        return 1
    print(text)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    if args.command == "extract":
        return extract_command(args.extractor, args.file_path)
    return 1


if __name__ == "__main__":
    sys.exit(main())
