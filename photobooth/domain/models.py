# photobooth/domain/models.py
import time
import uuid
from datetime import datetime, timezone
from typing import Annotated, List, Literal, Union

from PIL import ImageColor
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from photobooth.domain.geometry import Rect
from photobooth.domain.layout import LayoutType

DEFAULT_STAR_COLOR = "#FFD700"


def new_id(prefix: str) -> str:
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:6]}"


def _check_color(value: str) -> str:
    try:
        ImageColor.getrgb(value)
    except ValueError as e:
        raise ValueError(f"Warna tidak valid: {value!r}") from e
    return value


class _Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
    )


class _ElementBase(_Record):
    id: str
    x: float
    y: float
    width: float = Field(gt=0)
    height: float = Field(gt=0)
    rotation: float = 0.0
    opacity: float = Field(1.0, ge=0.0, le=1.0)

    @property
    def box(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)


class ImageElement(_ElementBase):
    kind: Literal["image"] = Field("image", alias="type", frozen=True)
    # Embedded payload (data URL or bare base64), never a path.
    src: str = Field(min_length=1)


class StarElement(_ElementBase):
    kind: Literal["star"] = Field("star", alias="type", frozen=True)
    color: str = DEFAULT_STAR_COLOR
    points: int = Field(5, ge=3)

    @field_validator("color")
    @classmethod
    def _valid_color(cls, v: str) -> str:
        return _check_color(v)


Element = Annotated[Union[ImageElement, StarElement], Field(discriminator="kind")]


class Template(_Record):
    id: str = Field(default_factory=lambda: new_id("template"))
    name: str
    background_color: str = "#ffffff"
    # Tetap selama umur template; ganti layout berarti template baru.
    layout_type: LayoutType = Field(LayoutType.SINGLE, frozen=True)
    elements: List[Element] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("background_color")
    @classmethod
    def _valid_background(cls, v: str) -> str:
        return _check_color(v)

    def to_record(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_record(cls, record) -> "Template":
        if isinstance(record, (str, bytes)):
            return cls.model_validate_json(record)
        return cls.model_validate(record)
