"""Allow running stdin-bridge as a module with python -m stdin_bridge."""

from .cli import main

if __name__ == "__main__":
    import sys

    sys.exit(main())
