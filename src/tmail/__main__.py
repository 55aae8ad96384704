"""
Module entry point.

Usage:
    python -m tmail generate
    python -m tmail wait --from sender@example.com --body
    python -m tmail clear-cache
"""

from tmail.cli import main

if __name__ == "__main__":
    main()
