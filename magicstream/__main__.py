import os

from . import create_app
from .config import configure_logging, load_settings


def main():
    settings = load_settings()
    configure_logging(settings["LOG_LEVEL"])
    app = create_app(settings)
    app.run(host=os.environ.get("HOST", "0.0.0.0"), port=int(os.environ.get("PORT", 8080)))


if __name__ == "__main__":
    main()
