#!/usr/bin/env python3
"""Entry point for planvfs CLI when run as python -m planvfs.cli."""

if __name__ == "__main__":
    from planvfs.cli.main import main

    main()
