"""Entry point for the PyQt GUI client."""
import sys

from .gui.windows import ChatApplication
from .logging_config import configure_logging


def main() -> None:
    configure_logging()
    app = ChatApplication()
    sys.exit(app.run())


if __name__ == "__main__":
    main()
