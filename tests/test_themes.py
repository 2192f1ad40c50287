import pytest

from themes import BUILTIN_THEMES, DEFAULT_REGISTRY, Theme, ThemeRegistry


def test_unknown_and_missing_ids_resolve_to_default():
    assert DEFAULT_REGISTRY.get("no-such-theme").id == "default"
    assert DEFAULT_REGISTRY.get(None).id == "default"
    assert DEFAULT_REGISTRY.get("").id == "default"


def test_known_ids_resolve_to_their_bundle():
    assert DEFAULT_REGISTRY.get("grid").layout == "grid"
    assert DEFAULT_REGISTRY.get("motion-3").background_media_url == "/background-video-3.mp4"


def test_every_theme_defines_the_base_variables():
    for theme in BUILTIN_THEMES:
        assert {"--bg", "--text", "--btn-bg", "--btn-text"} <= set(theme.css_variables), theme.id


def test_only_grid_uses_grid_layout():
    assert [t.id for t in DEFAULT_REGISTRY if t.layout == "grid"] == ["grid"]


def test_video_themes():
    with_video = sorted(t.id for t in DEFAULT_REGISTRY if t.background_media_url)
    assert with_video == ["motion", "motion-2", "motion-3", "motion-4"]


def test_themes_are_frozen():
    with pytest.raises(Exception):
        DEFAULT_REGISTRY.get("dark").layout = "grid"


def test_registry_requires_its_default():
    plain = Theme(id="plain", name="Plain", css_variables={"--bg": "#fff"})
    with pytest.raises(ValueError):
        ThemeRegistry([plain])
    registry = ThemeRegistry([plain], default_id="plain")
    assert registry.get("dark") is plain
    assert "plain" in registry and len(registry) == 1
