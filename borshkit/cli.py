"""Write the schema of the schema container itself to a file."""

from __future__ import annotations

import argparse
import sys
from typing import Optional, Sequence

from .schema import container_type
from .ser import to_vec

DEFAULT_OUTPUT = "schema_schema.dat"


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Print the schema container's own schema and save it, encoded, to a file."""
    parser = argparse.ArgumentParser(
        description="Generate the schema of BorshSchemaContainer and save it to a file."
    )
    parser.add_argument(
        "output",
        nargs="?",
        default=DEFAULT_OUTPUT,
        help=f"file to write (default: {DEFAULT_OUTPUT})",
    )
    args = parser.parse_args(argv)

    container = container_type().schema_container()
    print(repr(container))
    data = to_vec(container_type(), container.to_value())
    try:
        with open(args.output, "wb") as handle:
            handle.write(data)
    except OSError as error:
        print(f"Failed to write file: {error}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())