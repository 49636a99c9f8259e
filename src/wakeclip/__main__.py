"""Entry point for running wakeclip as a module."""

from .cli import app


def main() -> None:
    """Main entry point for the wakeclip CLI application."""
    app()


if __name__ == "__main__":
    main()
