"""Allow ``python -m qbtui``."""

from __future__ import annotations

from qbtui.cli.main import main

if __name__ == "__main__":
    main()
