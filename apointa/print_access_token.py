"""Print a development bearer token for a user email to stdout.

Usage:
    python -m apointa.print_access_token patient@example.com [role]
"""
import sys

from apointa.auth.jwt_handler import create_access_token


def main(argv: list[str] | None = None) -> None:
    args = sys.argv[1:] if argv is None else argv
    if not args:
        print("Usage: python -m apointa.print_access_token EMAIL [ROLE]", file=sys.stderr)
        sys.exit(1)
    role = args[1] if len(args) > 1 else None
    print(create_access_token(subject=args[0], role=role))


if __name__ == "__main__":
    main()
