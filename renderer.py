"""Standalone public page for a profile; also used as the live preview."""
import re
from typing import Iterable, List, Optional, Union

from jinja2 import BaseLoader, Environment
from pydantic import BaseModel

from schemas import Link, Profile, SOCIAL_PLATFORMS
from themes import DEFAULT_REGISTRY, ThemeRegistry

AVATAR_PLACEHOLDER = "https://via.placeholder.com/100"
BUTTON_BG_VAR = "--btn-bg"
BUTTON_TEXT_VAR = "--btn-text"

SOCIAL_ICONS = {
    "email": "fa-regular fa-envelope",
    "instagram": "fa-brands fa-instagram",
    "youtube": "fa-brands fa-youtube",
    "telegram": "fa-brands fa-telegram",
    "twitter": "fa-brands fa-x-twitter",
}

_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*:")
_INDEX_QUERY = re.compile(r"^#(\d+)$")
SAFE_SCHEMES = ("http", "https", "mailto", "tel")
# Browsers drop these before reading a scheme, so "java\tscript:" still counts.
_IGNORED_IN_SCHEME = re.compile(r"[\x00-\x20]")

PAGE_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>@{{ profile.username }}</title>
<link rel="stylesheet" href="https://cdnjs.cloudflare.com/ajax/libs/font-awesome/6.4.0/css/all.min.css">
<link href="https://fonts.googleapis.com/css2?family=Outfit:wght@300;400;600&display=swap" rel="stylesheet">
<style>
:root {
{%- for name, value in css_variables %}
    {{ name }}: {{ value }};
{%- endfor %}
}
* { box-sizing: border-box; }
html, body { scrollbar-width: none; -ms-overflow-style: none; overflow-x: hidden; }
html::-webkit-scrollbar, body::-webkit-scrollbar { display: none; width: 0; height: 0; }
body {
    background: var(--bg); color: var(--text); font-family: 'Outfit', sans-serif;
    margin: 0; padding: 2rem; min-height: 100vh;
    display: flex; flex-direction: column; align-items: center;
}
.video-bg { position: fixed; right: 0; bottom: 0; min-width: 100%; min-height: 100%; z-index: -1; object-fit: cover; }
.avatar { width: 96px; height: 96px; border-radius: 50%; object-fit: cover; margin-bottom: 1rem; border: 2px solid var(--text); z-index: 1; }
h1 { font-size: 1.25rem; font-weight: 700; margin: 0 0 0.5rem 0; z-index: 1; }
p { opacity: 0.8; margin: 0 0 2rem 0; text-align: center; max-width: 400px; line-height: 1.6; z-index: 1; }
.social-icons { display: flex; gap: 1rem; margin-bottom: 2rem; z-index: 1; }
.social-icons a { color: var(--text); font-size: 1.5rem; text-decoration: none; opacity: 0.9; transition: opacity 0.2s; }
.links { width: 100%; max-width: 480px; display: flex; flex-direction: column; gap: 1rem; z-index: 1; }
.link-btn {
    display: block; background: var(--btn-bg); color: var(--btn-text); text-decoration: none;
    padding: 1rem; text-align: center; border-radius: 12px; font-weight: 600;
    transition: transform 0.2s; backdrop-filter: blur(5px); border: 1px solid rgba(255,255,255,0.1);
}
.link-btn:hover { transform: scale(1.02); }
.link-thumb { width: 24px; height: 24px; border-radius: 4px; object-fit: cover; vertical-align: middle; margin-right: 0.5rem; }
.search-container { width: 100%; max-width: 480px; margin-bottom: 1.5rem; z-index: 1; }
.search-input {
    width: 100%; padding: 1rem; border-radius: 12px; border: 1px solid var(--btn-text);
    background: var(--btn-bg); color: var(--btn-text); font-family: inherit; font-size: 1rem;
    backdrop-filter: blur(5px); outline: none; transition: all 0.2s;
}
.search-input::placeholder { color: var(--btn-text); opacity: 0.7; }
.search-input:focus { box-shadow: 0 0 0 2px var(--btn-text); transform: translateY(-2px); }
.branding { margin-top: 3rem; opacity: 0.5; font-size: 0.8rem; z-index: 1; }
{% if theme.extra_css %}{{ theme.extra_css | safe }}
{% endif -%}
</style>
<script>
function filterLinks(query) {
    var q = query.toLowerCase().trim();
    var m = new RegExp({{ index_pattern | tojson }}).exec(q);
    var wanted = m ? parseInt(m[1], 10) : null;
    document.querySelectorAll('.link-btn').forEach(function (link) {
        var label = link.querySelector('.link-label');
        var text = (label ? label.textContent : link.textContent).toLowerCase();
        var index = parseInt(link.getAttribute('data-index'), 10);
        var match = text.indexOf(q) !== -1 || (wanted !== null && index === wanted);
        link.style.display = match ? '' : 'none';
    });
}
</script>
</head>
<body>
{%- if theme.background_media_url %}
<video autoplay muted loop playsinline class="video-bg"><source src="{{ theme.background_media_url }}" type="video/mp4"></video>
{%- endif %}
<img src="{{ profile.avatar_url or avatar_placeholder }}" class="avatar" alt="">
<h1>@{{ profile.username }}</h1>
<p>{{ profile.display_name or '' }}<br>{{ profile.bio or '' }}</p>
<div class="social-icons">
{%- for social in socials %}
<a href="{{ social.href }}" target="_blank" rel="noopener"><i class="{{ social.icon }}"></i></a>
{%- endfor %}
</div>
<div class="search-container">
<input type="text" class="search-input" placeholder="Search links (e.g. 'Twitter' or '#1')" onkeyup="filterLinks(this.value)">
</div>
<div class="links">
{%- for entry in entries %}
{%- if theme.layout == 'grid' %}
<a href="{{ entry.href }}" target="_blank" rel="noopener" class="link-btn grid-item" data-index="{{ entry.index }}">
<div class="link-badge">#{{ entry.index }}</div>
<div class="link-content link-label">{{ entry.link.title }}</div>
</a>
{%- else %}
<a href="{{ entry.href }}" target="_blank" rel="noopener" class="link-btn" data-index="{{ entry.index }}">
{%- if entry.link.image_url %}<img src="{{ entry.link.image_url }}" class="link-thumb" alt="">
{%- elif entry.link.icon %}<i class="{{ entry.link.icon }}"></i> {% endif -%}
<span class="link-label">{{ entry.link.title }}</span>
</a>
{%- endif %}
{%- endfor %}
</div>
<div class="branding">Made with Bio.Link</div>
</body>
</html>
"""

_env = Environment(loader=BaseLoader(), autoescape=True)
_page = _env.from_string(PAGE_TEMPLATE)


class LinkEntry(BaseModel):
    index: int
    link: Link

    @property
    def href(self) -> str:
        return safe_href(self.link.url)


class SocialAnchor(BaseModel):
    platform: str
    href: str
    icon: str


def safe_href(value: str) -> str:
    """Keep web, mail and phone URLs and relative ones; anything else becomes "#"."""
    value = (value or "").strip()
    m = _SCHEME.match(_IGNORED_IN_SCHEME.sub("", value))
    if m and m.group(0)[:-1].lower() not in SAFE_SCHEMES:
        return "#"
    return value


def social_href(platform: str, value: str) -> str:
    value = value.strip()
    if platform == "email" and not _SCHEME.match(value):
        return f"mailto:{value}"
    return safe_href(value)


def active_links(links: Iterable[Link]) -> List[LinkEntry]:
    """Enabled links in ascending order_index, numbered 1..N by position."""
    enabled = [l for l in links if l.is_enabled]
    ordered = sorted(enabled, key=lambda l: l.order_index)
    return [LinkEntry(index=i, link=l) for i, l in enumerate(ordered, start=1)]


def link_matches(text: str, display_index: int, query: str) -> bool:
    """Visibility rule of the search box.

    filterLinks in the page runs the same rule in the browser; both read the
    index query pattern from _INDEX_QUERY.
    """
    q = query.strip().lower()
    if q in (text or "").lower():
        return True
    m = _INDEX_QUERY.match(q)
    return bool(m) and int(m.group(1)) == display_index


def css_variables(profile: Profile, theme) -> list:
    variables = dict(theme.css_variables)
    if profile.button_color and theme.layout != "grid":
        variables[BUTTON_BG_VAR] = profile.button_color
    if profile.button_text_color:
        variables[BUTTON_TEXT_VAR] = profile.button_text_color
    return list(variables.items())


def _as_profile(profile: Union[Profile, dict]) -> Profile:
    return profile if isinstance(profile, Profile) else Profile.model_validate(profile)


def _as_link(link: Union[Link, dict]) -> Link:
    return link if isinstance(link, Link) else Link.model_validate(link)


def render(profile, links: Optional[Iterable] = None, registry: ThemeRegistry = DEFAULT_REGISTRY) -> str:
    profile = _as_profile(profile)
    theme = registry.get(profile.theme_id)
    socials = [
        SocialAnchor(platform=p, href=social_href(p, v), icon=SOCIAL_ICONS[p])
        for p, v in profile.social_links.items()
        if p in SOCIAL_PLATFORMS and v.strip()
    ]
    return _page.render(
        profile=profile,
        theme=theme,
        css_variables=css_variables(profile, theme),
        socials=socials,
        entries=active_links(_as_link(l) for l in (links or [])),
        avatar_placeholder=AVATAR_PLACEHOLDER,
        index_pattern=_INDEX_QUERY.pattern,
    )
