"""HTML shells for the internal views; themed pages come from renderer.render."""
from jinja2 import BaseLoader, Environment

BASE = """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<meta name="viewport" content="width=device-width, initial-scale=1">
<title>{{ title }} | Bio.Link</title>
<link href="https://fonts.googleapis.com/css2?family=Outfit:wght@300;400;600&display=swap" rel="stylesheet">
<style>
body { font-family: 'Outfit', sans-serif; margin: 0; padding: 2rem; background: #f8fafc; color: #0f172a; }
main { max-width: 960px; margin: 0 auto; }
form { display: flex; flex-direction: column; gap: 0.75rem; max-width: 360px; }
input, button { font: inherit; padding: 0.75rem; border-radius: 8px; border: 1px solid #cbd5e1; }
button { background: #0f172a; color: #fff; cursor: pointer; }
.editor { display: grid; grid-template-columns: 1fr 380px; gap: 2rem; }
.preview { width: 380px; height: 720px; border: 8px solid #0f172a; border-radius: 32px; }
.link-row { display: flex; gap: 1rem; padding: 0.5rem 0; border-bottom: 1px solid #e2e8f0; }
.muted { color: #64748b; }
</style>
</head>
<body><main>{{ body | safe }}</main>
<script>
document.addEventListener('submit', async function (e) {
    var form = e.target;
    e.preventDefault();
    var res = await fetch(form.action, {
        method: 'POST',
        headers: {'Content-Type': 'application/json'},
        body: JSON.stringify(Object.fromEntries(new FormData(form)))
    });
    var data = await res.json();
    if (res.ok && data.redirect) {
        window.location.assign(data.redirect);
    } else {
        alert(data.message || (typeof data.detail === 'string' ? data.detail : 'Please check the form'));
    }
});
</script>
</body>
</html>
"""

VIEWS = {
    "landing": """
<h1>Everything you are, in one simple link.</h1>
<p class="muted">Claim your page and share all your links from a single place.</p>
<p><a href="/signup">Get started</a> &middot; <a href="/login">Log in</a></p>
""",
    "auth": """
<h1>{{ heading }}</h1>
<form method="post" action="{{ action }}">
<input type="email" name="email" placeholder="Email" required>
<input type="password" name="password" placeholder="Password" required>
<button type="submit">{{ submit_label }}</button>
</form>
<h2 id="verify">Got a one-time code?</h2>
<form method="post" action="/auth/verify">
<input type="email" name="email" placeholder="Email" required>
<input name="code" placeholder="6-digit code" inputmode="numeric" autocomplete="one-time-code" required>
<button type="submit">Verify</button>
</form>
""",
    "onboarding": """
<h1>Claim your username</h1>
<form method="post" action="/onboarding">
<input name="username" placeholder="username" pattern="[a-zA-Z0-9_-]+" required>
<input name="display_name" placeholder="Display name">
<button type="submit">Continue</button>
</form>
""",
    "dashboard": """
<h1>Dashboard</h1>
<p>Your page: <a href="/{{ profile.username }}" target="_blank">/{{ profile.username }}</a></p>
<div class="editor">
<section>
<h2>Links</h2>
{% for row in links %}
<div class="link-row"><strong>#{{ loop.index }}</strong><span>{{ row.title }}</span><span class="muted">{{ row.url }}</span>
{% if not row.is_enabled %}<span class="muted">(hidden)</span>{% endif %}</div>
{% else %}
<p class="muted">No links yet.</p>
{% endfor %}
</section>
<iframe class="preview" title="Preview" srcdoc="{{ preview }}"></iframe>
</div>
""",
    "not_found": """
<h2>User not found</h2>
<a href="/">Go Home</a>
""",
}

_env = Environment(loader=BaseLoader(), autoescape=True)
_base = _env.from_string(BASE)
_views = {name: _env.from_string(src) for name, src in VIEWS.items()}


def render_view(view: str, title: str = "", **context) -> str:
    body = _views[view].render(**context)
    return _base.render(title=title or view.replace("_", " ").title(), body=body)
