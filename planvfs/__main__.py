"""Entry point for ``python -m planvfs``."""

from planvfs.cli.main import main

if __name__ == "__main__":
    main()
