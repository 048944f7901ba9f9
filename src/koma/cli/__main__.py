"""CLI entry point for koma.cli module.

Enables execution via: python -m koma.cli
"""

from koma.cli.sync_events import main

if __name__ == "__main__":
    raise SystemExit(main())
