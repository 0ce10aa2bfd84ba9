from flask import current_app

EXTENSION_KEY = "magicstream"


def get_services():
    return current_app.extensions[EXTENSION_KEY]


def get_store():
    return get_services()["store"]


def get_blocklist():
    return get_services()["blocklist"]


def get_classifier():
    return get_services()["classifier"]
