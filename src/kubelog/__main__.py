"""Allow running kubelog as ``python -m kubelog``."""

from .cli import main

if __name__ == "__main__":
    main()
