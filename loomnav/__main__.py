"""Module entrypoint for ``python -m loomnav``."""

from .cli import main


if __name__ == "__main__":
    main()
