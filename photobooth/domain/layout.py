# photobooth/domain/layout.py
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from photobooth.domain.geometry import Rect


class LayoutType(str, Enum):
    SINGLE = "1"
    STRIP4 = "4"


# --- KONFIGURASI FRAME (piksel absolut pada output) ---
# Frame polaroid selalu memakai nilai piksel ini, tidak tergantung template.
FRAME_TOP_PADDING = 40
FRAME_SIDE_PADDING = 40
FRAME_BOTTOM_PADDING = 120
STRIP_PHOTO_PADDING = 15
STRIP_DOWNSCALE = 2.5


@dataclass(frozen=True)
class LayoutConfig:
    """Design-time canvas of a layout, in design units."""
    layout_type: LayoutType
    canvas_width: int
    canvas_height: int
    top_padding: int
    side_padding: int
    bottom_padding: int
    photo_areas: Tuple[Rect, ...]

    @property
    def photo_count(self) -> int:
        return len(self.photo_areas)

    @property
    def canvas_size(self) -> Tuple[int, int]:
        return (self.canvas_width, self.canvas_height)


def _single() -> LayoutConfig:
    top, side, bottom = 40, 40, 120
    return LayoutConfig(
        layout_type=LayoutType.SINGLE,
        canvas_width=400,
        canvas_height=360,
        top_padding=top,
        side_padding=side,
        bottom_padding=bottom,
        photo_areas=(Rect(side, top, 320, 200),),
    )


def _strip4() -> LayoutConfig:
    top, side, bottom = 40, 40, 120
    photo_w, photo_h, gap = 170, 115, 15
    areas = tuple(Rect(side, top + i * (photo_h + gap), photo_w, photo_h) for i in range(4))
    return LayoutConfig(
        layout_type=LayoutType.STRIP4,
        canvas_width=250,
        canvas_height=700,
        top_padding=top,
        side_padding=side,
        bottom_padding=bottom,
        photo_areas=areas,
    )


_LAYOUTS = {
    LayoutType.SINGLE: _single(),
    LayoutType.STRIP4: _strip4(),
}


def layout_for(layout_type) -> LayoutConfig:
    try:
        return _LAYOUTS[LayoutType(layout_type)]
    except ValueError as e:
        raise ValueError(f"Layout tidak dikenal: {layout_type!r}") from e
