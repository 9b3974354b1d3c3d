"""Allow running as ``python -m mpv_control``."""

from .cli import main

if __name__ == "__main__":
    main()
