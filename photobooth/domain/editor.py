# photobooth/domain/editor.py
import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Literal, Optional, Tuple

from PIL import Image, ImageColor, ImageDraw, ImageFont

from photobooth.domain.compositor import draw_element
from photobooth.domain.layout import LayoutType, layout_for
from photobooth.domain.models import (
    DEFAULT_STAR_COLOR,
    ImageElement,
    StarElement,
    Template,
    new_id,
)
from photobooth.infrastructure.cv.image_codec import PayloadDecodeError, decode_payload

logger = logging.getLogger(__name__)

SCATTER_COLORS = ("#FFD700", "#FFA500", "#FF6B6B", "#4ECDC4", "#45B7D1", "#96CEB4")
PLACEHOLDER_FILL = "#e0e0e0"
PLACEHOLDER_TEXT = "#999999"
SELECTION_OUTLINE = "#00aaff"

# Properti yang boleh diubah lewat update_selected; ukuran lewat resize_selected.
_MUTABLE_FIELDS = {
    "image": {"x", "y", "rotation", "opacity"},
    "star": {"x", "y", "rotation", "opacity", "color", "points"},
}


@dataclass(frozen=True)
class PointerEvent:
    kind: Literal["down", "move", "up"]
    x: float
    y: float


class EditorSession:
    """Draft template plus the selection/drag state of one editing session.

    Selection and drag state live here only; ``to_template`` never carries them.
    """

    def __init__(
        self,
        name: str = "My Template",
        background_color: str = "#ffffff",
        layout_type: LayoutType = LayoutType.SINGLE,
        rng: Optional[random.Random] = None,
    ):
        self.name = name
        self.background_color = background_color
        self.layout_type = LayoutType(layout_type)
        self.elements: List[ImageElement | StarElement] = []
        self.selected_id: Optional[str] = None
        self.dragging = False
        self.drag_offset: Tuple[float, float] = (0.0, 0.0)
        self._rng = rng or random.Random()
        self._image_cache: Dict[str, Optional[Image.Image]] = {}

    @property
    def layout(self):
        return layout_for(self.layout_type)

    @property
    def selected(self):
        return self.find(self.selected_id) if self.selected_id else None

    def find(self, element_id: str):
        for el in self.elements:
            if el.id == element_id:
                return el
        return None

    # --- Pointer / hit-testing ---

    def hit_test(self, x: float, y: float) -> Optional[str]:
        # Topmost element wins: last drawn is checked first.
        for el in reversed(self.elements):
            if el.box.contains(x, y):
                return el.id
        return None

    def pointer_down(self, x: float, y: float) -> Optional[str]:
        hit = self.hit_test(x, y)
        self.selected_id = hit
        if hit is None:
            self.dragging = False
            return None
        el = self.find(hit)
        self.dragging = True
        self.drag_offset = (x - el.x, y - el.y)
        return hit

    def pointer_move(self, x: float, y: float) -> bool:
        if not self.dragging or self.selected is None:
            return False
        el = self.selected
        # Tidak di-clamp: elemen boleh keluar dari kanvas.
        el.x = x - self.drag_offset[0]
        el.y = y - self.drag_offset[1]
        return True

    def pointer_up(self, x: Optional[float] = None, y: Optional[float] = None) -> None:
        self.dragging = False

    def handle_pointer(self, event: PointerEvent):
        if event.kind == "down":
            return self.pointer_down(event.x, event.y)
        if event.kind == "move":
            return self.pointer_move(event.x, event.y)
        if event.kind == "up":
            return self.pointer_up(event.x, event.y)
        raise ValueError(f"Jenis event pointer tidak dikenal: {event.kind!r}")

    # --- Element creation ---

    def _append(self, element, select: bool = True):
        self.elements.append(element)
        if select:
            self.selected_id = element.id
        return element

    def add_star(self, color: str = DEFAULT_STAR_COLOR, points: int = 5) -> StarElement:
        layout = self.layout
        star = StarElement(
            id=new_id("star"),
            x=layout.canvas_width / 2 - 25,
            y=layout.canvas_height - layout.bottom_padding / 2 - 25,
            width=50,
            height=50,
            rotation=self._rng.random() * 30 - 15,
            opacity=0.9,
            color=color,
            points=points,
        )
        return self._append(star)

    def scatter_stars(self, count: int = 8) -> List[StarElement]:
        """Drops random small stars across the four border zones around the photos."""
        layout = self.layout
        rng = self._rng
        photo_top = layout.photo_areas[0].y
        photo_bottom = layout.photo_areas[-1].bottom
        width = layout.canvas_width

        stars = []
        for i in range(count):
            zone = rng.randrange(4)
            if zone == 0:  # top
                x = rng.random() * (width - 40) + 20
                y = rng.random() * (layout.top_padding - 20) + 5
            elif zone == 1:  # bottom
                x = rng.random() * (width - 40) + 20
                y = photo_bottom + rng.random() * (layout.bottom_padding - 40) + 10
            elif zone == 2:  # left
                x = rng.random() * (layout.side_padding - 20) + 5
                y = photo_top + rng.random() * (photo_bottom - photo_top - 30)
            else:  # right
                x = width - layout.side_padding + rng.random() * (layout.side_padding - 20) + 5
                y = photo_top + rng.random() * (photo_bottom - photo_top - 30)

            size = 15 + rng.random() * 25
            stars.append(StarElement(
                id=new_id(f"star-{i}"),
                x=x - size / 2,
                y=y - size / 2,
                width=size,
                height=size,
                rotation=rng.random() * 360,
                opacity=0.6 + rng.random() * 0.4,
                color=rng.choice(SCATTER_COLORS),
                points=5 if rng.random() > 0.5 else 4,
            ))
        self.elements.extend(stars)
        return stars

    def add_image(self, src: str) -> ImageElement:
        layout = self.layout
        image = ImageElement(
            id=new_id("img"),
            x=layout.canvas_width / 2 - 30,
            y=layout.canvas_height - layout.bottom_padding / 2 - 30,
            width=60,
            height=60,
            rotation=0,
            opacity=1,
            src=src,
        )
        return self._append(image)

    # --- Element mutation ---

    def _replace_selected(self, **fields):
        el = self.selected
        if el is None:
            return None
        updated = type(el).model_validate({**el.model_dump(), **fields})
        self.elements[self.elements.index(el)] = updated
        return updated

    def update_selected(self, **fields):
        el = self.selected
        if el is None:
            return None
        not_allowed = set(fields) - _MUTABLE_FIELDS[el.kind]
        if not_allowed:
            raise ValueError(f"Field tidak bisa diubah untuk elemen {el.kind}: {sorted(not_allowed)}")
        return self._replace_selected(**fields)

    def resize_selected(self, factor: float):
        """Aspect-locked resize: both sides scale by ``factor``."""
        if factor <= 0:
            raise ValueError(f"Faktor resize harus positif, bukan {factor}.")
        el = self.selected
        if el is None:
            return None
        return self._replace_selected(width=el.width * factor, height=el.height * factor)

    def set_selected_size(self, width: float):
        el = self.selected
        if el is None:
            return None
        return self.resize_selected(width / el.width)

    def delete_selected(self) -> bool:
        el = self.selected
        if el is None:
            return False
        self.elements.remove(el)
        self.selected_id = None
        self.dragging = False
        self._prune_image_cache()
        return True

    def clear(self) -> None:
        self.elements = []
        self.selected_id = None
        self.dragging = False
        self._image_cache.clear()

    def change_layout(self, layout_type) -> None:
        # Slot geometry changes, so existing elements no longer fit.
        self.layout_type = LayoutType(layout_type)
        self.clear()

    # --- Template hand-off ---

    def to_template(self) -> Template:
        return Template(
            name=self.name,
            background_color=self.background_color,
            layout_type=self.layout_type,
            elements=[el.model_copy(deep=True) for el in self.elements],
        )

    def load_template(self, template: Template) -> None:
        self.name = template.name
        self.background_color = template.background_color
        self.layout_type = template.layout_type
        self.elements = [el.model_copy(deep=True) for el in template.elements]
        self.selected_id = None
        self.dragging = False
        self._prune_image_cache()

    # --- Live preview ---

    def _prune_image_cache(self) -> None:
        # Hanya simpan hasil decode untuk src yang masih dipakai elemen.
        live = {el.src for el in self.elements if isinstance(el, ImageElement)}
        for src in list(self._image_cache):
            if src not in live:
                del self._image_cache[src]

    def _preview_image(self, element: ImageElement) -> Optional[Image.Image]:
        if element.src not in self._image_cache:
            try:
                self._image_cache[element.src] = decode_payload(element.src)
            except PayloadDecodeError as e:
                logger.warning(f"Preview: gambar elemen '{element.id}' tidak bisa di-decode: {e}")
                self._image_cache[element.src] = None
        return self._image_cache[element.src]

    def render_preview(self) -> Image.Image:
        """Design-resolution preview: background, photo placeholders, elements, selection."""
        layout = self.layout
        canvas = Image.new("RGBA", layout.canvas_size, ImageColor.getcolor(self.background_color, "RGBA"))
        draw = ImageDraw.Draw(canvas)
        font = ImageFont.load_default()

        for index, area in enumerate(layout.photo_areas):
            draw.rectangle([area.x, area.y, area.right - 1, area.bottom - 1], fill=PLACEHOLDER_FILL)
            label = "Photo Area" if layout.photo_count == 1 else f"Photo {index + 1}"
            left, top, right, bottom = draw.textbbox((0, 0), label, font=font)
            cx, cy = area.center
            draw.text((cx - (right - left) / 2, cy - (bottom - top) / 2), label, fill=PLACEHOLDER_TEXT, font=font)

        for el in self.elements:
            image = self._preview_image(el) if isinstance(el, ImageElement) else None
            draw_element(canvas, el, el.box, image)

        selected = self.selected
        if selected is not None:
            box = selected.box
            _dashed_rect(ImageDraw.Draw(canvas), box.x - 2, box.y - 2, box.right + 2, box.bottom + 2, SELECTION_OUTLINE)
        return canvas.convert("RGB")


def _dashed_rect(draw: ImageDraw.ImageDraw, x0: float, y0: float, x1: float, y1: float, color: str, dash: int = 5, width: int = 2) -> None:
    def segment(ax, ay, bx, by):
        length = max(abs(bx - ax), abs(by - ay))
        pos = 0.0
        while pos < length:
            end = min(pos + dash, length)
            t0, t1 = pos / length, end / length
            draw.line([(ax + (bx - ax) * t0, ay + (by - ay) * t0), (ax + (bx - ax) * t1, ay + (by - ay) * t1)], fill=color, width=width)
            pos += dash * 2

    segment(x0, y0, x1, y0)
    segment(x1, y0, x1, y1)
    segment(x1, y1, x0, y1)
    segment(x0, y1, x0, y0)
