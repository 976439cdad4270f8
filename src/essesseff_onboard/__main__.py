"""Allow `python -m essesseff_onboard`."""

from __future__ import annotations

from essesseff_onboard.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
