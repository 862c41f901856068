"""Entry point for running GitPanic as a module."""

from gitpanic.cli import app


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
