"""Tests for the interactive editor session."""

import random

import pytest
from pydantic import ValidationError

from photobooth.domain.editor import SCATTER_COLORS, EditorSession, PointerEvent
from photobooth.domain.layout import LayoutType
from photobooth.domain.models import StarElement, Template

from conftest import png_data_url


def _session_with(*elements, layout_type=LayoutType.SINGLE):
    session = EditorSession(layout_type=layout_type)
    session.elements.extend(elements)
    return session


class TestHitTesting:
    def test_topmost_element_wins(self):
        bottom = StarElement(id="bottom", x=0, y=0, width=100, height=100)
        top = StarElement(id="top", x=50, y=50, width=100, height=100)
        session = _session_with(bottom, top)
        assert session.hit_test(75, 75) == "top"
        assert session.hit_test(25, 25) == "bottom"
        assert session.hit_test(175, 175) is None

    def test_repeated_hits_are_stable(self):
        session = _session_with(*[StarElement(id=f"s{i}", x=i * 10, y=0, width=50, height=50) for i in range(5)])
        results = {session.hit_test(45, 20) for _ in range(20)}
        assert results == {"s4"}

    def test_rotation_is_ignored(self):
        """Only the axis-aligned box counts, even when rotated."""
        session = _session_with(StarElement(id="r", x=0, y=0, width=100, height=10, rotation=90))
        assert session.hit_test(95, 5) == "r"
        assert session.hit_test(50, 40) is None


class TestDragging:
    def test_drag_moves_by_pointer_delta(self):
        session = _session_with(StarElement(id="s", x=100, y=100, width=50, height=50))
        assert session.pointer_down(110, 120) == "s"
        assert session.drag_offset == (10, 20)
        assert session.pointer_move(200, 300)
        el = session.find("s")
        assert (el.x, el.y) == (190, 280)

    def test_drag_is_not_clamped(self):
        session = _session_with(StarElement(id="s", x=100, y=100, width=50, height=50))
        session.pointer_down(100, 100)
        session.pointer_move(-500, 2000)
        assert (session.find("s").x, session.find("s").y) == (-500, 2000)

    def test_release_ends_drag(self):
        session = _session_with(StarElement(id="s", x=0, y=0, width=50, height=50))
        session.pointer_down(10, 10)
        session.pointer_up()
        assert not session.pointer_move(300, 300)
        assert session.find("s").x == 0
        assert session.selected_id == "s"

    def test_miss_clears_selection(self):
        session = _session_with(StarElement(id="s", x=0, y=0, width=50, height=50))
        session.pointer_down(10, 10)
        session.pointer_up()
        assert session.pointer_down(300, 300) is None
        assert session.selected_id is None
        assert not session.pointer_move(10, 10)

    def test_handle_pointer_events(self):
        session = _session_with(StarElement(id="s", x=0, y=0, width=50, height=50))
        session.handle_pointer(PointerEvent("down", 5, 5))
        session.handle_pointer(PointerEvent("move", 105, 55))
        session.handle_pointer(PointerEvent("up", 105, 55))
        assert (session.find("s").x, session.find("s").y) == (100, 50)
        assert not session.dragging

    def test_unknown_pointer_event(self):
        with pytest.raises(ValueError):
            EditorSession().handle_pointer(PointerEvent("wheel", 0, 0))


class TestElementCreation:
    def test_add_star_placement(self):
        session = EditorSession(rng=random.Random(1))
        star = session.add_star(color="#FF6B6B", points=8)
        assert (star.x, star.y, star.width, star.height) == (175, 275, 50, 50)
        assert -15 <= star.rotation < 15
        assert star.opacity == 0.9
        assert star.points == 8
        assert session.selected_id == star.id

    def test_add_star_strip_layout(self):
        star = EditorSession(layout_type=LayoutType.STRIP4).add_star()
        assert (star.x, star.y) == (100, 615)

    def test_add_image_placement(self, red_png):
        session = EditorSession()
        image = session.add_image(red_png)
        assert (image.x, image.y, image.width, image.height) == (170, 270, 60, 60)
        assert image.opacity == 1
        assert session.selected_id == image.id

    @pytest.mark.parametrize("layout_type", list(LayoutType))
    def test_scatter_stars_ranges(self, layout_type):
        session = EditorSession(layout_type=layout_type, rng=random.Random(7))
        stars = session.scatter_stars()
        assert len(stars) == 8
        assert session.elements == stars
        for star in stars:
            assert 15 <= star.width < 40
            assert star.width == star.height
            assert 0.6 <= star.opacity <= 1.0
            assert star.points in (4, 5)
            assert star.color in SCATTER_COLORS
        assert len({s.id for s in stars}) == 8

    def test_scatter_stars_reproducible(self):
        a = EditorSession(rng=random.Random(42)).scatter_stars()
        b = EditorSession(rng=random.Random(42)).scatter_stars()
        assert [(s.x, s.y, s.width, s.color) for s in a] == [(s.x, s.y, s.width, s.color) for s in b]


class TestElementMutation:
    def test_resize_is_aspect_locked(self, red_png):
        session = EditorSession()
        session.add_image(red_png)
        resized = session.resize_selected(1.5)
        assert (resized.width, resized.height) == (90, 90)

    def test_set_size(self):
        session = _session_with(StarElement(id="s", x=0, y=0, width=40, height=20))
        session.selected_id = "s"
        resized = session.set_selected_size(100)
        assert (resized.width, resized.height) == (100, 50)

    def test_resize_rejects_non_positive(self):
        session = EditorSession()
        session.add_star()
        with pytest.raises(ValueError):
            session.resize_selected(0)

    def test_update_fields(self):
        session = EditorSession()
        star = session.add_star()
        session.update_selected(rotation=270, opacity=0.5, color="#000000")
        updated = session.find(star.id)
        assert (updated.rotation, updated.opacity, updated.color) == (270, 0.5, "#000000")

    def test_update_rejects_kind_and_size(self):
        session = EditorSession()
        session.add_star()
        with pytest.raises(ValueError):
            session.update_selected(kind="image")
        with pytest.raises(ValueError):
            session.update_selected(width=10)

    def test_update_color_on_image_rejected(self, red_png):
        session = EditorSession()
        session.add_image(red_png)
        with pytest.raises(ValueError):
            session.update_selected(color="#ffffff")

    def test_invalid_update_leaves_element_untouched(self):
        session = EditorSession()
        star = session.add_star()
        with pytest.raises(ValidationError):
            session.update_selected(opacity=1.5, rotation=45)
        assert session.find(star.id).opacity == 0.9
        assert session.find(star.id).rotation == star.rotation

    def test_nothing_selected(self):
        session = EditorSession()
        assert session.update_selected(rotation=10) is None
        assert session.resize_selected(2) is None
        assert not session.delete_selected()

    def test_delete_selected(self):
        session = EditorSession()
        first = session.add_star()
        second = session.add_star()
        assert session.delete_selected()
        assert [e.id for e in session.elements] == [first.id]
        assert session.selected_id is None
        assert session.find(second.id) is None

    def test_change_layout_clears(self):
        session = EditorSession()
        session.add_star()
        session.change_layout(LayoutType.STRIP4)
        assert session.elements == []
        assert session.selected_id is None
        assert session.layout.canvas_size == (250, 700)


class TestTemplateHandOff:
    def test_to_template(self):
        session = EditorSession(name="Party", background_color="#DDA0DD", layout_type=LayoutType.STRIP4)
        session.add_star()
        template = session.to_template()
        assert template.name == "Party"
        assert template.background_color == "#DDA0DD"
        assert template.layout_type == LayoutType.STRIP4
        assert len(template.elements) == 1
        assert template.id.startswith("template-")

    def test_template_detached_from_session(self):
        session = _session_with(StarElement(id="s", x=0, y=0, width=50, height=50))
        template = session.to_template()
        session.pointer_down(10, 10)
        session.pointer_move(300, 300)
        assert template.elements[0].x == 0

    def test_load_template(self, single_template):
        session = EditorSession(layout_type=LayoutType.STRIP4)
        session.add_star()
        session.load_template(single_template)
        assert session.layout_type == LayoutType.SINGLE
        assert session.background_color == "#000000"
        assert [e.id for e in session.elements] == ["star-1"]
        assert session.selected_id is None
        session.elements[0].x = 999
        assert single_template.elements[0].x == 180

    def test_selection_not_persisted(self):
        session = EditorSession()
        session.add_star()
        record = session.to_template().to_record()
        assert "selected" not in str(record).lower()
        assert Template.from_record(record).elements[0].kind == "star"


class TestPreview:
    def test_preview_size_and_placeholders(self):
        img = EditorSession().render_preview()
        assert img.size == (400, 360)
        assert img.getpixel((42, 42)) == (224, 224, 224)
        assert img.getpixel((5, 5)) == (255, 255, 255)

    def test_strip_preview_has_four_slots(self):
        img = EditorSession(layout_type=LayoutType.STRIP4).render_preview()
        assert img.size == (250, 700)
        for y in (42, 172, 302, 432):
            assert img.getpixel((42, y)) == (224, 224, 224)
        assert img.getpixel((42, 160)) == (255, 255, 255)

    def test_preview_draws_elements_and_selection(self):
        session = EditorSession()
        star = session.add_star(color="#0000ff")
        session.update_selected(rotation=0, opacity=1)
        img = session.render_preview()
        cx, cy = star.box.center
        assert img.getpixel((round(cx), round(cy))) == (0, 0, 255)
        # First dash of the outline runs along the top edge, 2px outside the box.
        x, y = round(star.x), round(star.y - 2)
        column = {img.getpixel((x, y + dy)) for dy in (-1, 0, 1)}
        assert (0, 170, 255) in column

    def test_preview_skips_broken_image(self, broken_image):
        session = _session_with(broken_image)
        assert session.render_preview().size == (400, 360)

    def test_decoded_images_dropped_with_their_elements(self, single_template):
        session = EditorSession()
        first = session.add_image(png_data_url((8, 8), (255, 0, 0, 255)))
        session.add_image(png_data_url((8, 8), (0, 255, 0, 255)))
        session.render_preview()
        assert len(session._image_cache) == 2

        assert session.delete_selected()
        assert list(session._image_cache) == [first.src]

        session.load_template(single_template)
        assert session._image_cache == {}

        session.add_image(first.src)
        session.render_preview()
        session.clear()
        assert session._image_cache == {}
