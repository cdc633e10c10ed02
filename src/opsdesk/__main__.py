"""Entry point for 'python -m opsdesk' command."""

from opsdesk.cli import main

if __name__ == "__main__":
    main()
