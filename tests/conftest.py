from io import BytesIO

import pytest
from PIL import Image

from PlantIdentifier import PlantIdentifier
from UploadController import UploadedImage

MONSTERA_RESPONSE = (
    'Sure! {"name":"Monstera","scientificName":"Monstera deliciosa","category":"Tropical",'
    '"careRequirements":{"water":"Weekly","light":"Bright indirect","soil":"Well-draining"},'
    '"description":"A climbing plant.","Type":"Non-poisonous","uses":"Decorative, air-purifying"}'
)

UNKNOWN_RESPONSE = (
    '{"name":"Unknown Plant","scientificName":"N/A","category":"N/A",'
    '"careRequirements":{"water":"N/A","light":"N/A","soil":"N/A"},'
    '"description":"Try a closer photo of the leaves in daylight.","type":"N/A","uses":"N/A"}'
)


class FakeBackend:
    def __init__(self, reply="", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    def generate(self, prompt, image_base64, mime_type):
        self.calls.append((prompt, image_base64, mime_type))
        if self.error is not None:
            raise self.error
        return self.reply


class ExplodingIdentifier:
    configured = True

    def identify(self, image):
        raise RuntimeError("boom")


def image_bytes(fmt="PNG"):
    buf = BytesIO()
    Image.new("RGB", (4, 4), (20, 160, 60)).save(buf, format=fmt)
    return buf.getvalue()


@pytest.fixture
def png_bytes():
    return image_bytes("PNG")


@pytest.fixture
def png_upload(png_bytes):
    return UploadedImage(filename="leaf.png", content_type="image/png", data=png_bytes)


@pytest.fixture
def backend():
    return FakeBackend(reply=MONSTERA_RESPONSE)


@pytest.fixture
def identifier(backend):
    return PlantIdentifier(backend=backend)
