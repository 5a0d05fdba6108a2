"""Entry point for WebApp Updater.

Usage:
    python -m webapp_updater            Watch the documents folder (foreground)
    python -m webapp_updater once       Run a single update pass and exit
    python -m webapp_updater help       Show usage
"""

import sys


def main() -> None:
    """Delegate to the headless service CLI."""
    from webapp_updater.service import main as service_main

    service_main(sys.argv[1:])


if __name__ == "__main__":
    main()
