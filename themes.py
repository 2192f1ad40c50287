"""
Theme registry.

Themes are plain data: CSS variables, optional extra CSS, an optional looping
background video and a layout variant. The renderer reads them, nothing here
branches on a theme id.
"""
from typing import Dict, Iterator, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_THEME_ID = "default"


class Theme(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    css_variables: Dict[str, str] = Field(..., description="--name -> value, emitted on :root")
    extra_css: str = ""
    background_media_url: Optional[str] = None
    layout: Literal["list", "grid"] = "list"


def _vars(bg, text, btn_bg, btn_text):
    return {"--bg": bg, "--text": text, "--btn-bg": btn_bg, "--btn-text": btn_text}


def _video_css(video_filter: str, blur: str, border: str) -> str:
    return (
        f".video-bg {{ filter: {video_filter}; }}\n"
        f".link-btn {{ backdrop-filter: blur({blur}); -webkit-backdrop-filter: blur({blur}); {border} }}"
    )


BUILTIN_THEMES = (
    Theme(id="default", name="Default", css_variables=_vars("#fff", "#000", "#f8f9fa", "#000")),
    Theme(id="dark", name="Dark", css_variables=_vars("#111", "#fff", "#222", "#fff")),
    Theme(
        id="gradient-blue",
        name="Gradient Blue",
        css_variables=_vars("linear-gradient(135deg, #667eea 0%, #764ba2 100%)", "#fff", "rgba(255,255,255,0.2)", "#fff"),
    ),
    Theme(id="forest", name="Forest", css_variables=_vars("#1a2f23", "#e2e8f0", "#2d4a3e", "#fff")),
    Theme(
        id="sunset",
        name="Sunset",
        css_variables=_vars("linear-gradient(120deg, #f6d365 0%, #fda085 100%)", "#fff", "rgba(255,255,255,0.3)", "#fff"),
    ),
    Theme(
        id="ocean",
        name="Ocean",
        css_variables=_vars("linear-gradient(to top, #30cfd0 0%, #330867 100%)", "#fff", "rgba(255,255,255,0.2)", "#fff"),
    ),
    Theme(
        id="aurora",
        name="Aurora",
        css_variables=_vars("linear-gradient(-45deg, #ee7752, #e73c7e, #23a6d5, #23d5ab)", "#fff", "rgba(255,255,255,0.25)", "#fff"),
        extra_css=(
            "@keyframes gradient { 0% { background-position: 0% 50%; } 50% { background-position: 100% 50%; } "
            "100% { background-position: 0% 50%; } }\n"
            "body { background-size: 400% 400% !important; animation: gradient 15s ease infinite; }"
        ),
    ),
    Theme(
        id="galaxy",
        name="Galaxy",
        css_variables=_vars("linear-gradient(to right, #243949 0%, #517fa4 100%)", "#e0f2fe", "rgba(0,0,0,0.3)", "#fff"),
        extra_css=".link-btn { border: 1px solid rgba(255,255,255,0.1); }",
    ),
    Theme(
        id="luxury",
        name="Luxury",
        css_variables=_vars("linear-gradient(to bottom, #141e30, #243b55)", "#f0e68c", "rgba(0,0,0,0.6)", "#ffd700"),
        extra_css=(
            ".link-btn { border: 1px solid #ffd700; letter-spacing: 1px; text-transform: uppercase; }\n"
            ".avatar { border-color: #ffd700 !important; }"
        ),
    ),
    Theme(
        id="motion",
        name="Motion",
        css_variables=_vars("#000", "#fff", "rgba(255, 255, 255, 0.15)", "#fff"),
        extra_css=_video_css("brightness(0.6)", "10px", "border: 1px solid rgba(255, 255, 255, 0.2);"),
        background_media_url="/background-video.mp4",
    ),
    Theme(
        id="motion-2",
        name="Motion II",
        css_variables=_vars("#000", "#fff", "rgba(20, 20, 20, 0.6)", "#fff"),
        extra_css=_video_css("brightness(0.5) contrast(1.1)", "5px", "border: 1px solid rgba(255, 255, 255, 0.1);"),
        background_media_url="/background-video-2.mp4",
    ),
    Theme(
        id="motion-3",
        name="Motion III",
        css_variables=_vars("#000", "#fff", "rgba(255, 255, 255, 0.1)", "#fff"),
        extra_css=_video_css("saturate(1.2)", "20px", "border: 1px solid rgba(255, 255, 255, 0.3); border-radius: 30px;"),
        background_media_url="/background-video-3.mp4",
    ),
    Theme(
        id="motion-4",
        name="Motion IV",
        css_variables=_vars("#000", "#e2e8f0", "rgba(0, 0, 0, 0.7)", "#fff"),
        extra_css=_video_css("grayscale(0.5) brightness(0.7)", "5px", "border-left: 4px solid #f43f5e; border-radius: 4px;"),
        background_media_url="/background-video-4.mp4",
    ),
    Theme(
        id="grid",
        name="Grid",
        layout="grid",
        css_variables=_vars("#f8fafc", "#0f172a", "#fff", "#1e293b"),
        extra_css="""
body { max-width: 100%; padding: 2rem 1rem; }
.links { display: grid; grid-template-columns: repeat(auto-fill, minmax(130px, 1fr)); gap: 1rem; width: 100%; max-width: 1000px; }
.link-btn {
    background: var(--btn-bg); color: var(--btn-text); border-radius: 8px; padding: 1rem;
    box-shadow: 0 1px 3px rgba(0,0,0,0.1); transition: transform 0.2s, box-shadow 0.2s;
    display: flex; flex-direction: column; align-items: center; justify-content: center;
    text-align: center; position: relative; border: 1px solid #e2e8f0; min-height: 80px;
    text-decoration: none; font-weight: 600;
}
.link-btn:hover { transform: translateY(-2px); box-shadow: 0 4px 6px -1px rgba(0,0,0,0.1); border-color: #cbd5e1; }
.link-badge {
    position: absolute; top: 0.25rem; left: 0.25rem; background: #fbbf24; color: #000;
    font-weight: 700; font-size: 0.75rem; padding: 2px 6px; border-radius: 4px;
}
.link-content { margin-top: 0.5rem; word-break: break-word; }
""".strip(),
    ),
)


class ThemeRegistry:
    """Immutable theme lookup; unknown ids resolve to the default theme."""

    def __init__(self, themes, default_id: str = DEFAULT_THEME_ID):
        self._themes = {t.id: t for t in themes}
        if default_id not in self._themes:
            raise ValueError(f"Default theme {default_id!r} is not registered")
        self.default_id = default_id

    @property
    def default(self) -> Theme:
        return self._themes[self.default_id]

    def get(self, theme_id: Optional[str]) -> Theme:
        return self._themes.get(theme_id or "", self.default)

    def ids(self):
        return list(self._themes)

    def __contains__(self, theme_id) -> bool:
        return theme_id in self._themes

    def __iter__(self) -> Iterator[Theme]:
        return iter(self._themes.values())

    def __len__(self) -> int:
        return len(self._themes)


DEFAULT_REGISTRY = ThemeRegistry(BUILTIN_THEMES)
