"""Pytest configuration and shared fixtures for photobooth tests."""

import base64

import cv2
import numpy as np
import pytest
from PIL import Image

from photobooth.domain.layout import LayoutType
from photobooth.domain.models import ImageElement, StarElement, Template
from photobooth.infrastructure.cv.image_codec import to_data_url


def make_photo(width, height, color=(0, 0, 0)):
    """Captured photo as an HxWx3 uint8 buffer."""
    photo = np.zeros((height, width, 3), dtype=np.uint8)
    photo[:, :] = color
    return photo


def png_data_url(size=(10, 10), color=(255, 0, 0, 255)):
    return to_data_url(Image.new("RGBA", size, color))


def hdr_data_url(size=(8, 8), value=1.0):
    """Radiance HDR payload; OpenCV decodes these as float32."""
    ok, buf = cv2.imencode(".hdr", np.full((size[1], size[0], 3), value, dtype=np.float32))
    assert ok
    return "data:image/vnd.radiance;base64," + base64.b64encode(buf.tobytes()).decode("ascii")


@pytest.fixture
def star():
    """The end-to-end scenario star: (180, 280), 50x50, opacity 0.9."""
    return StarElement(id="star-1", x=180, y=280, width=50, height=50, rotation=0, opacity=0.9)


@pytest.fixture
def single_template(star):
    return Template(
        id="template-single",
        name="Gold star",
        background_color="#000000",
        layout_type=LayoutType.SINGLE,
        elements=[star],
    )


@pytest.fixture
def strip_template():
    return Template(
        id="template-strip",
        name="Strip",
        background_color="#FFB6C1",
        layout_type=LayoutType.STRIP4,
        elements=[StarElement(id="star-s", x=100, y=600, width=40, height=40)],
    )


@pytest.fixture
def red_png():
    return png_data_url()


@pytest.fixture
def broken_image():
    return ImageElement(id="img-broken", x=10, y=10, width=60, height=60, src="data:image/png;base64,bm90IGFuIGltYWdl")
