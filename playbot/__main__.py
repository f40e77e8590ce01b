"""Allow running as ``python -m playbot``."""

from playbot.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
