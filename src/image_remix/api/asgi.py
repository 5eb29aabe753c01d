"""ASGI entrypoint for the image remix API."""

from image_remix.api.app import create_app
from image_remix.containers import build_container

app = create_app(build_container())
