import asyncio
import contextlib

from .cli.cli import main_cli


def main() -> None:
    """Entry point for the podhoard CLI application."""
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main_cli())


if __name__ == "__main__":
    main()
