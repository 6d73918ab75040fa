from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from typing import List, Optional

from photobooth.domain.layout import LayoutType

class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class CompositeRequest(_Body):
    mode: LayoutType
    # Captured photos as data URLs or bare base64 (1 for Single, 4 for Strip4)
    photos: List[str] = Field(min_length=1)
    template_id: Optional[str] = None
    # Fall back to the active template when no template_id is given
    use_active: bool = True

class CompositeResponse(_Body):
    id: str
    width: int
    height: int
    url: str
    template_id: Optional[str] = None

class ActivateResponse(_Body):
    status: str = "ok"
    template_id: str
