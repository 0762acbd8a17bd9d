import pytest
from unittest.mock import patch, MagicMock

from domain.constants import PAGES
from domain.models import Admin, Student
from services.router import route

# Mock streamlit before importing the app
st_mock = MagicMock()


def load_registry():
    with patch.dict("sys.modules", {"streamlit": st_mock}):
        from app import PAGE_REGISTRY
    return PAGE_REGISTRY


def test_page_registry_structure():
    """
    Tests that the PAGE_REGISTRY has the correct structure.
    """
    registry = load_registry()
    assert isinstance(registry, dict)
    for key, value in registry.items():
        assert "label" in value
        assert "render_func" in value
        assert "controller" in value
        assert callable(value["render_func"])


def test_registry_covers_every_routable_page():
    registry = load_registry()
    assert sorted(registry) == sorted(PAGES)


def test_only_dashboards_own_controllers():
    """
    Pages holding live subscriptions are exactly the two dashboards.
    """
    registry = load_registry()
    with_controller = [key for key, value in registry.items() if value["controller"] is not None]
    assert sorted(with_controller) == ["adminDashboard", "studentDashboard"]
    for key in with_controller:
        assert callable(registry[key]["controller"])


@pytest.mark.parametrize("role", [None, Student("S1"), Admin()])
@pytest.mark.parametrize("requested", PAGES + ["bogus"])
def test_router_output_is_always_renderable(role, requested):
    registry = load_registry()
    page = route(True, role is not None, role, requested)
    assert page in registry
