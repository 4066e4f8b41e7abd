"""console script entrypoint for the tvm CLI."""

from .cli import main as cli_main


def main() -> int:
    """Console entrypoint used by the ``tvm`` script."""
    return cli_main()


if __name__ == "__main__":
    raise SystemExit(main())
