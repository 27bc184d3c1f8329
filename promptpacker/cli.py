# promptpacker/cli.py

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from textual.logging import TextualHandler

from .app import PromptPackerApp
from .config import MAX_TOKEN_LIMIT


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="promptpacker",
        description="Interactive TUI for selecting repository files and packing them into an AI-friendly prompt.",
    )
    parser.add_argument("path", nargs="?", help="project directory (defaults to the current directory)")
    parser.add_argument(
        "--max-tokens",
        type=int,
        default=MAX_TOKEN_LIMIT,
        help=f"token budget for the assembled prompt (default: {MAX_TOKEN_LIMIT:,})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="log debug output to the textual console")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    if args.max_tokens <= 0:
        print("Error: --max-tokens must be positive.", file=sys.stderr)
        sys.exit(2)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        handlers=[TextualHandler()],
    )

    initial_folder: Optional[Path] = None
    if args.path:
        path_arg = Path(args.path)
        if path_arg.is_dir():
            initial_folder = path_arg.resolve()
        else:
            print(f"Warning: Provided path '{args.path}' is not a valid directory. Using the current directory.")

    app = PromptPackerApp(initial_path=initial_folder, max_tokens=args.max_tokens)
    app.run()


if __name__ == "__main__":
    main()
