# photobooth/infrastructure/cv/image_codec.py
import base64
import binascii
import io
from typing import Union

import cv2
import numpy as np
from PIL import Image

Raster = Union[Image.Image, np.ndarray]


class PayloadDecodeError(ValueError):
    pass


def payload_bytes(src: str) -> bytes:
    """Raw bytes of a data URL ("data:image/png;base64,...") or bare base64 string."""
    if not src:
        raise PayloadDecodeError("Payload kosong.")
    encoded = src
    if src.startswith("data:"):
        _, sep, encoded = src.partition(",")
        if not sep:
            raise PayloadDecodeError("Data URL tanpa pemisah ',' sebelum data.")
    try:
        return base64.b64decode(encoded + "===")
    except (binascii.Error, ValueError) as e:
        raise PayloadDecodeError(f"Base64 tidak valid: {e}") from e


def decode_cv(b: bytes, imread_flag=cv2.IMREAD_UNCHANGED) -> np.ndarray:
    if not b:
        raise PayloadDecodeError("Tidak ada data gambar.")
    arr = np.frombuffer(b, np.uint8)
    try:
        img = cv2.imdecode(arr, imread_flag)
    except cv2.error as e:
        raise PayloadDecodeError(f"cv2.imdecode error: {e}") from e
    if img is None:
        raise PayloadDecodeError("cv2.imdecode gagal membaca data gambar.")
    return img


def cv_to_pil(img: np.ndarray) -> Image.Image:
    # OpenCV keeps channels in BGR(A) order.
    if img.ndim == 2:
        return Image.fromarray(img).convert("RGBA")
    if img.shape[2] == 4:
        return Image.fromarray(cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA))
    return Image.fromarray(cv2.cvtColor(img, cv2.COLOR_BGR2RGB)).convert("RGBA")


def to_uint8(img: np.ndarray) -> np.ndarray:
    """Bring 16-bit and float (HDR, float TIFF) decodes down to 8 bits per channel."""
    if img.dtype == np.uint8:
        return img
    if np.issubdtype(img.dtype, np.integer):
        return cv2.convertScaleAbs(img, alpha=255.0 / np.iinfo(img.dtype).max)
    if np.issubdtype(img.dtype, np.floating):
        # Float data is linear 0..1; anything outside is clipped.
        return (np.clip(np.nan_to_num(img), 0.0, 1.0) * 255).astype(np.uint8)
    raise PayloadDecodeError(f"Tipe data gambar tidak didukung: {img.dtype}.")


def decode_payload(src: str) -> Image.Image:
    """Decode an embedded element payload into an RGBA image."""
    img = decode_cv(payload_bytes(src))
    try:
        return cv_to_pil(to_uint8(img))
    except PayloadDecodeError:
        raise
    except (cv2.error, ValueError, TypeError) as e:
        raise PayloadDecodeError(f"Konversi gambar gagal: {e}") from e


def decode_photo(src: str) -> Image.Image:
    """Decode a captured photo (data URL or base64) into an RGB image."""
    img = decode_cv(payload_bytes(src), cv2.IMREAD_COLOR)
    try:
        return Image.fromarray(cv2.cvtColor(to_uint8(img), cv2.COLOR_BGR2RGB))
    except PayloadDecodeError:
        raise
    except (cv2.error, ValueError, TypeError) as e:
        raise PayloadDecodeError(f"Konversi foto gagal: {e}") from e


def to_pil_rgb(raster: Raster) -> Image.Image:
    if isinstance(raster, Image.Image):
        return raster if raster.mode == "RGB" else raster.convert("RGB")
    arr = np.asarray(raster)
    if arr.dtype != np.uint8:
        raise PayloadDecodeError(f"Buffer foto harus uint8, bukan {arr.dtype}.")
    if arr.ndim == 2 or (arr.ndim == 3 and arr.shape[2] in (3, 4)):
        return Image.fromarray(arr).convert("RGB")
    raise PayloadDecodeError(f"Bentuk buffer foto tidak didukung: {arr.shape}.")


def encode_png(img: Image.Image) -> bytes:
    buf = io.BytesIO()
    img.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def to_data_url(img: Image.Image) -> str:
    return "data:image/png;base64," + base64.b64encode(encode_png(img)).decode("ascii")
