"""Tests for element search and scroll-region detection."""

from conftest import element
from snapdrive.device.element_finder import (
    find_best,
    find_by_predicate,
    find_scroll_region,
    matches,
)
from snapdrive.models.config import CaptureConfig
from snapdrive.models.element import ElementPredicate, Point

CENTER = Point(x=200, y=400)


class TestMatching:
    """Tests for predicate matching."""

    def test_exact_label(self):
        el = element("Sign in")
        assert matches(el, ElementPredicate(label="Sign in"))
        assert not matches(el, ElementPredicate(label="sign in"))

    def test_label_contains_is_case_insensitive(self):
        assert matches(element("Sign in"), ElementPredicate(label_contains="SIGN"))
        assert not matches(element(None), ElementPredicate(label_contains="sign"))

    def test_type_and_enabled(self):
        el = element("Go", type="Button", enabled=False)
        assert matches(el, ElementPredicate(type="button"))
        assert not matches(el, ElementPredicate(type="button", enabled=True))

    def test_find_by_predicate(self):
        elements = [element("B"), element("A"), element("A"), element(None)]
        assert len(find_by_predicate(elements, ElementPredicate(label="A"))) == 2


class TestFindBest:
    """Tests for find_best ranking."""

    def test_not_found(self):
        result = find_best([element("Other")], ElementPredicate(label="Missing"), CENTER)
        assert result.found is False
        assert result.count == 0
        assert result.tap_coordinates is None

    def test_enabled_before_disabled(self):
        elements = [
            element("Next", type="Button", x=0, y=0, enabled=False),
            element("Next", type="Button", x=0, y=600),
        ]
        result = find_best(elements, ElementPredicate(label="Next"), CENTER)
        assert result.element.frame.y == 600
        assert result.count == 2

    def test_nearest_to_center_wins_ties(self):
        elements = [
            element("Row", type="Cell", x=0, y=0, width=400, height=40),
            element("Row", type="Cell", x=0, y=380, width=400, height=40),
        ]
        result = find_best(elements, ElementPredicate(label="Row"), CENTER)
        assert result.tap_coordinates == Point(x=200, y=400)

    def test_ranking_follows_given_center(self):
        elements = [
            element("Row", type="Cell", x=0, y=0, width=400, height=40),
            element("Row", type="Cell", x=0, y=380, width=400, height=40),
        ]
        result = find_best(elements, ElementPredicate(label="Row"), Point(x=200, y=10))
        assert result.tap_coordinates == Point(x=200, y=20)


class TestFindScrollRegion:
    """Tests for find_scroll_region heuristics."""

    def test_empty_tree_uses_screen_center(self):
        config = CaptureConfig(screen_center=Point(x=10, y=20))
        assert find_scroll_region([], config) == Point(x=10, y=20)

    def test_largest_container_excluding_bars(self):
        config = CaptureConfig()
        elements = [
            element(None, type="Group", x=0, y=0, width=400, height=44),      # nav bar
            element(None, type="Group", x=0, y=760, width=400, height=80),    # tab bar
            element(None, type="ScrollView", x=0, y=44, width=400, height=300),
            element(None, type="CollectionView", x=0, y=100, width=400, height=600),
        ]
        assert find_scroll_region(elements, config) == Point(x=200, y=400)

    def test_center_of_mass_fallback(self):
        config = CaptureConfig()
        elements = [
            element("A", type="StaticText", x=0, y=100, width=50, height=20),
            element("B", type="StaticText", x=100, y=300, width=50, height=20),
        ]
        # avg x of centres = (25 + 125) / 2, y spans 100..320
        assert find_scroll_region(elements, config) == Point(x=75, y=210)

    def test_only_bars_falls_back_to_screen_center(self):
        config = CaptureConfig()
        elements = [element("Back", type="Button", x=0, y=0, width=60, height=44)]
        assert find_scroll_region(elements, config) == config.screen_center
