"""Entrypoint for `python -m clean_notes`."""

from .cli import main


if __name__ == "__main__":
    main()
