"""Module entrypoint for ``python -m lazybrowser``.

All argument parsing and runtime setup happen in ``lazybrowser.cli``.
"""

from .cli import main


if __name__ == "__main__":
    main()
