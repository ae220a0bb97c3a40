import sys

from token_exporter.cli import main


if __name__ == "__main__":
    sys.exit(main())
