# photobooth/domain/compositor.py
import logging
import time
from typing import List, Mapping, Optional, Sequence, Tuple

import cv2
import numpy as np
from PIL import Image, ImageColor, ImageDraw

from photobooth.config.settings import settings
from photobooth.domain.geometry import Rect, element_transform
from photobooth.domain.layout import (
    FRAME_BOTTOM_PADDING,
    FRAME_SIDE_PADDING,
    FRAME_TOP_PADDING,
    STRIP_DOWNSCALE,
    STRIP_PHOTO_PADDING,
    LayoutType,
    layout_for,
)
from photobooth.domain.models import ImageElement, StarElement, Template
from photobooth.domain.star import star_vertices
from photobooth.infrastructure.cv.image_codec import PayloadDecodeError, Raster, decode_payload, to_pil_rgb

# --- PENGATURAN LOGGER ---
logger = logging.getLogger(__name__)
if not logger.handlers:
    handler = logging.StreamHandler()
    formatter = logging.Formatter('%(asctime)s [%(levelname)s] [COMPOSITOR] %(message)s', '%Y-%m-%d %H:%M:%S')
    handler.setFormatter(formatter)
    logger.addHandler(handler)
    logger.setLevel(logging.INFO)
    logger.propagate = False


class CompositionError(ValueError):
    pass


def raster_size(raster: Raster) -> Tuple[int, int]:
    if isinstance(raster, Image.Image):
        return raster.size
    shape = np.asarray(raster).shape
    if len(shape) < 2:
        raise CompositionError(f"Buffer foto tidak memiliki dimensi 2D: {shape}")
    return (int(shape[1]), int(shape[0]))


def overlay_scale(layout_type: LayoutType, canvas_size: Tuple[int, int]) -> Tuple[float, float]:
    """Ratio between the output canvas and the layout's design canvas."""
    config = layout_for(layout_type)
    return (canvas_size[0] / config.canvas_width, canvas_size[1] / config.canvas_height)


def element_boxes(template: Template, canvas_size: Tuple[int, int]) -> List[Rect]:
    sx, sy = overlay_scale(template.layout_type, canvas_size)
    return [el.box.scaled(sx, sy) for el in template.elements]


def _with_opacity(layer: Image.Image, opacity: float) -> Image.Image:
    if opacity >= 1.0:
        return layer
    alpha = layer.getchannel("A").point(lambda a: round(a * opacity))
    layer.putalpha(alpha)
    return layer


def draw_star(layer: Image.Image, element: StarElement, box: Rect) -> None:
    # Outer radius is half the box on each axis.
    transform = element_transform(box, element.rotation, box.width / 2, box.height / 2)
    polygon = transform.apply_all(star_vertices((0.0, 0.0), 1.0, element.points))
    ImageDraw.Draw(layer).polygon(polygon, fill=ImageColor.getcolor(element.color, "RGBA"))


def draw_image(layer: Image.Image, image: Image.Image, element: ImageElement, box: Rect) -> None:
    w, h = max(1, round(box.width)), max(1, round(box.height))
    img = image.convert("RGBA").resize((w, h), Image.Resampling.LANCZOS)
    if element.rotation % 360:
        # PIL rotates counter-clockwise.
        img = img.rotate(-element.rotation, resample=Image.Resampling.BICUBIC, expand=True)
    cx, cy = box.center
    layer.paste(img, (round(cx - img.width / 2), round(cy - img.height / 2)), img)


def draw_element(canvas: Image.Image, element, box: Rect, image: Optional[Image.Image] = None) -> bool:
    """Alpha-composites one element onto an RGBA canvas in place.

    Returns False when an image element has nothing to draw.
    """
    layer = Image.new("RGBA", canvas.size, (0, 0, 0, 0))
    if isinstance(element, StarElement):
        draw_star(layer, element, box)
    elif isinstance(element, ImageElement):
        if image is None:
            return False
        draw_image(layer, image, element, box)
    else:
        raise TypeError(f"Jenis elemen tidak dikenal: {type(element).__name__}")
    canvas.alpha_composite(_with_opacity(layer, element.opacity))
    return True


def _resolve_image(element: ImageElement, decoded_images: Optional[Mapping[str, Optional[Image.Image]]]) -> Optional[Image.Image]:
    if decoded_images is not None and element.id in decoded_images:
        return decoded_images[element.id]
    try:
        return decode_payload(element.src)
    except PayloadDecodeError as e:
        logger.warning(f"Gagal decode gambar elemen '{element.id}', elemen dilewati: {e}")
        return None


def _resize_cv(photo: Image.Image, size: Tuple[int, int]) -> Image.Image:
    arr = np.asarray(photo)
    resized = cv2.resize(arr, size, interpolation=cv2.INTER_AREA)
    return Image.fromarray(resized)


def _photo_slots(photos: List[Image.Image], mode: LayoutType) -> Tuple[Tuple[int, int], List[Tuple[Image.Image, Tuple[int, int]]]]:
    """Output canvas size and (photo, offset) pairs for the polaroid frame."""
    if mode == LayoutType.SINGLE:
        w, h = photos[0].size
        size = (w + FRAME_SIDE_PADDING * 2, h + FRAME_TOP_PADDING + FRAME_BOTTOM_PADDING)
        return size, [(photos[0], (FRAME_SIDE_PADDING, FRAME_TOP_PADDING))]

    # Ukuran foto pertama menentukan ukuran semua slot.
    photo_w = photos[0].width / STRIP_DOWNSCALE
    photo_h = photos[0].height / STRIP_DOWNSCALE
    size = (
        int(photo_w + FRAME_SIDE_PADDING * 2),
        int(photo_h * 4 + STRIP_PHOTO_PADDING * 3 + FRAME_TOP_PADDING + FRAME_BOTTOM_PADDING),
    )
    target = (max(1, int(photo_w)), max(1, int(photo_h)))
    slots = []
    for i, photo in enumerate(photos):
        y = FRAME_TOP_PADDING + i * (photo_h + STRIP_PHOTO_PADDING)
        slots.append((_resize_cv(photo, target), (FRAME_SIDE_PADDING, round(y))))
    return size, slots


def compose(
    photos: Sequence[Raster],
    mode,
    template: Optional[Template] = None,
    decoded_images: Optional[Mapping[str, Optional[Image.Image]]] = None,
    default_background: Optional[str] = None,
) -> Image.Image:
    """Renders background, photo(s) and the template overlay into one RGB image.

    The overlay is drawn only when ``template`` targets the same layout as ``mode``.
    ``decoded_images`` maps image element ids to already decoded payloads (``None``
    marks a failed decode); missing ids are decoded here.
    """
    start_time = time.perf_counter()
    try:
        mode = LayoutType(mode)
    except ValueError as e:
        raise CompositionError(f"Mode tidak dikenal: {mode!r}") from e

    photos = list(photos)
    expected = layout_for(mode).photo_count
    if len(photos) != expected:
        raise CompositionError(f"Mode {mode.name} butuh {expected} foto, diterima {len(photos)}.")
    for i, photo in enumerate(photos):
        w, h = raster_size(photo)
        if w <= 0 or h <= 0:
            raise CompositionError(f"Dimensi foto #{i} tidak valid: {w}x{h}")
    try:
        pil_photos = [to_pil_rgb(p) for p in photos]
    except PayloadDecodeError as e:
        raise CompositionError(str(e)) from e

    canvas_size, slots = _photo_slots(pil_photos, mode)

    active = template is not None and template.layout_type == mode
    background = template.background_color if active else (default_background or settings.DEFAULT_BACKGROUND)
    canvas = Image.new("RGBA", canvas_size, ImageColor.getcolor(background, "RGBA"))

    for photo, offset in slots:
        canvas.paste(photo, offset)

    drawn = skipped = 0
    if active:
        for element, box in zip(template.elements, element_boxes(template, canvas_size)):
            image = _resolve_image(element, decoded_images) if isinstance(element, ImageElement) else None
            if draw_element(canvas, element, box, image):
                drawn += 1
            else:
                skipped += 1
    elif template is not None:
        logger.info(f"Template '{template.id}' untuk layout {template.layout_type.name}, overlay dilewati untuk mode {mode.name}.")

    elapsed = time.perf_counter() - start_time
    logger.info(f"Composite {mode.name} {canvas_size[0]}x{canvas_size[1]}: {drawn} elemen digambar, {skipped} dilewati ({elapsed:.3f}s).")
    return canvas.convert("RGB")
