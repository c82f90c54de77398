import sys

from galho.app import GalhoApp
from galho.config import configure_logging, load_settings


def main():
    """ Entrypoint when is installed via pip """
    settings = load_settings(sys.argv[1] if len(sys.argv) > 1 else None)
    configure_logging(settings)
    app = GalhoApp(settings)
    app.run()

# Development mode
if __name__ == "__main__":
    main()
