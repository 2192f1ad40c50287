import re

from renderer import active_links, link_matches, render, safe_href, social_href
from schemas import Link, Profile


def make_profile(**kw):
    data = {"id": "u1", "username": "alice123", "display_name": "Alice", "bio": "Hello"}
    data.update(kw)
    return Profile(**data)


def make_link(title, order_index, enabled=True, **kw):
    return Link(id=f"id-{title}", user_id="u1", title=title, url=f"https://{title.lower()}.example",
                is_enabled=enabled, order_index=order_index, **kw)


def indices(html):
    return [int(i) for i in re.findall(r'data-index="(\d+)"', html)]


def test_render_is_deterministic_and_leaves_inputs_alone():
    profile = make_profile(button_color="#123456")
    links = [make_link("B", 2), make_link("A", 1)]
    before = (profile.model_dump(), [l.model_dump() for l in links])

    assert render(profile, links) == render(profile, links)
    assert (profile.model_dump(), [l.model_dump() for l in links]) == before


def test_only_enabled_links_in_order_index_order_numbered_without_gaps():
    links = [
        make_link("Fifth", 5),
        make_link("First", 1),
        make_link("Hidden", 3, enabled=False),
        make_link("Second", 2),
    ]
    html = render(make_profile(), links)

    assert indices(html) == [1, 2, 3]
    assert "Hidden" not in html
    assert html.index("First") < html.index("Second") < html.index("Fifth")


def test_display_index_ignores_sparse_order_index():
    entries = active_links([make_link("X", 40), make_link("Y", 7)])
    assert [(e.index, e.link.title) for e in entries] == [(1, "Y"), (2, "X")]


def test_equal_order_index_keeps_input_order():
    entries = active_links([make_link("One", 0), make_link("Two", 0), make_link("Three", 0)])
    assert [e.link.title for e in entries] == ["One", "Two", "Three"]


def test_unknown_theme_uses_default_variables():
    unknown = render(make_profile(theme_id="does-not-exist"), [])
    default = render(make_profile(theme_id="default"), [])
    assert unknown == default
    assert "--bg: #fff;" in unknown
    assert "--btn-bg: #f8f9fa;" in unknown


def test_search_by_text_and_by_display_index():
    links = [("Twitter", 1), ("My Site", 2)]

    def visible(query):
        return [i for title, i in links if link_matches(title, i, query)]

    assert visible("twitter") == [1]
    assert visible("#2") == [2]
    assert visible("  SITE ") == [2]
    assert visible("") == [1, 2]
    assert visible("#9") == []


def test_page_embeds_the_filter_script():
    html = render(make_profile(), [make_link("Twitter", 0)])
    assert "function filterLinks(query)" in html
    assert 'onkeyup="filterLinks(this.value)"' in html
    assert "link.style.display = match ? '' : 'none';" in html
    assert 'new RegExp("^#(\\\\d+)$")' in html


def test_grid_ignores_button_color_but_keeps_text_color():
    profile = make_profile(theme_id="grid", button_color="#ff0000", button_text_color="#00ff00")
    html = render(profile, [make_link("Site", 0)])

    assert "--btn-bg: #fff;" in html
    assert "#ff0000" not in html
    assert "--btn-text: #00ff00;" in html


def test_list_themes_apply_button_color():
    profile = make_profile(theme_id="dark", button_color="#ff0000")
    html = render(profile, [])
    assert "--btn-bg: #ff0000;" in html
    assert "--btn-text: #fff;" in html


def test_grid_layout_emits_badged_cards():
    html = render(make_profile(theme_id="grid"), [make_link("Shop", 0), make_link("Blog", 1)])
    assert '<div class="link-badge">#1</div>' in html
    assert '<div class="link-badge">#2</div>' in html
    assert "grid-item" in html


def test_list_layout_emits_icon_glyph():
    html = render(make_profile(), [make_link("Code", 0, icon="fa-brands fa-github")])
    assert '<i class="fa-brands fa-github"></i>' in html
    assert "link-badge" not in html


def test_background_video_only_for_media_themes():
    assert '<source src="/background-video.mp4"' in render(make_profile(theme_id="motion"), [])
    assert "<video autoplay muted loop playsinline" in render(make_profile(theme_id="motion"), [])
    assert "<video" not in render(make_profile(theme_id="default"), [])


def test_social_icons_and_mailto_normalisation():
    profile = make_profile(social_email="alice@biolink.io", social_instagram="https://instagram.com/alice")
    html = render(profile, [])
    assert 'href="mailto:alice@biolink.io"' in html
    assert 'href="https://instagram.com/alice"' in html
    assert "fa-youtube" not in html


def test_social_href_keeps_existing_scheme():
    assert social_href("email", "mailto:a@b.io") == "mailto:a@b.io"
    assert social_href("email", "a@b.io") == "mailto:a@b.io"
    assert social_href("telegram", "https://t.me/alice") == "https://t.me/alice"


def test_user_text_is_escaped():
    html = render(make_profile(bio="<script>alert(1)</script>"), [make_link("<b>x</b>", 0)])
    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html


def test_accepts_plain_documents():
    doc = {"id": "u1", "username": "bob", "theme_id": None}
    html = render(doc, [{"user_id": "u1", "title": "Home", "url": "https://bob.dev", "order_index": 0}])
    assert "@bob" in html
    assert 'data-index="1"' in html


def test_output_is_a_complete_document():
    html = render(make_profile(), [])
    assert html.startswith("<!DOCTYPE html>")
    assert html.rstrip().endswith("</html>")
    assert "Made with Bio.Link" in html


def test_safe_href_keeps_web_mail_and_phone_urls():
    assert safe_href("https://x.com/alice") == "https://x.com/alice"
    assert safe_href("HTTP://example.com") == "HTTP://example.com"
    assert safe_href("mailto:a@b.io") == "mailto:a@b.io"
    assert safe_href("tel:+15550100") == "tel:+15550100"
    assert safe_href("example.com/page") == "example.com/page"
    assert safe_href("") == ""


def test_safe_href_neutralises_script_and_data_urls():
    assert safe_href("javascript:alert(1)") == "#"
    assert safe_href("  JavaScript:alert(1)") == "#"
    assert safe_href("java\tscript:alert(1)") == "#"
    assert safe_href("data:text/html,<script>alert(1)</script>") == "#"
    assert safe_href("vbscript:msgbox(1)") == "#"


def test_script_urls_never_reach_the_page():
    profile = make_profile(
        social_twitter="javascript:fetch('/api/links', {method: 'POST'})",
        social_email="javascript:alert(1)",
    )
    link = Link(id="l1", user_id="u1", title="Bad", url="javascript:alert(document.cookie)", order_index=0)
    html = render(profile, [link])

    assert "javascript:" not in html
    assert '<a href="#" target="_blank" rel="noopener" class="link-btn" data-index="1">' in html
