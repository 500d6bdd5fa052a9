"""A program that greets the world."""

import sys

GREETING = "Hello World\n"


def main(argv=None):
    """Write the greeting to standard output and return the exit status 0."""
    stream = sys.stdout
    stream.write(GREETING)
    stream.flush()
    return 0


if __name__ == "__main__":
    sys.exit(main())