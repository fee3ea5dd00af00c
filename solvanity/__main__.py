"""Entry point for python -m solvanity."""

import sys


def main():
    from solvanity.cli import main as cli_main
    sys.exit(cli_main())


if __name__ == "__main__":
    main()
