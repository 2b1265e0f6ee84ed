"""
Module entry point for: python -m act_parser

Allows running the parser directly as a module:
    python -m act_parser parse <pdf_path> [options]
    python -m act_parser batch <directory> [options]
    python -m act_parser serve [options]
"""

from .cli import cli


def main():
    cli()


if __name__ == "__main__":
    main()
