# photobooth/infrastructure/storage/output_store.py
import os
import re
import secrets
import string
import time
from typing import Optional

import aiofiles
from PIL import Image

from photobooth.infrastructure.cv.image_codec import encode_png

_ID_PATTERN = re.compile(r"^[0-9a-z]+$")
_BASE36 = string.digits + string.ascii_lowercase


def new_output_id() -> str:
    # Epoch millis + 7 base36 chars.
    return str(int(time.time() * 1000)) + "".join(secrets.choice(_BASE36) for _ in range(7))


class OutputStore:
    def __init__(self, directory: str):
        self.directory = directory

    def path_for(self, output_id: str) -> Optional[str]:
        if not _ID_PATTERN.match(output_id or ""):
            return None
        return os.path.join(self.directory, f"{output_id}.png")

    async def save(self, img: Image.Image) -> str:
        os.makedirs(self.directory, exist_ok=True)
        output_id = new_output_id()
        async with aiofiles.open(self.path_for(output_id), "wb") as f:
            await f.write(encode_png(img))
        return output_id

    def exists(self, output_id: str) -> bool:
        path = self.path_for(output_id)
        return path is not None and os.path.isfile(path)
