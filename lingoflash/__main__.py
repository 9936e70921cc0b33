"""Module entrypoint for running Lingoflash as ``python -m lingoflash``."""

from __future__ import annotations

from lingoflash.cli import main


if __name__ == "__main__":
    main()
