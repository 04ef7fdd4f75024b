"""Default templates written into a project the first time they are needed.

Projects own their copies afterwards, so edits made by the team survive
regeneration.
"""

POST_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{ title }}</title>
    <meta name="description" content="{{ description }}">
    <meta name="author" content="{{ author }}">
{% if tags %}
    <meta name="keywords" content="{{ tags_comma_separated }}">
{% endif %}
{% if canonical_url %}
    <link rel="canonical" href="{{ canonical_url }}">
    <meta property="og:url" content="{{ canonical_url }}">
{% endif %}
    <meta property="og:type" content="article">
    <meta property="og:title" content="{{ title }}">
    <meta property="og:description" content="{{ description }}">
    <meta property="og:site_name" content="{{ site_name }}">
{% if og_image %}
    <meta property="og:image" content="{{ og_image }}">
    <meta name="twitter:image" content="{{ og_image }}">
{% endif %}
{% if date_iso %}
    <meta property="article:published_time" content="{{ date_iso }}">
{% endif %}
    <meta name="twitter:card" content="summary_large_image">
    <meta name="twitter:title" content="{{ title }}">
    <meta name="twitter:description" content="{{ description }}">
    {{ verification_comment | safe }}
    <script type="application/ld+json">
    {
        "@context": "https://schema.org",
        "@type": "BlogPosting",
        "headline": {{ title | tojson }},
        "description": {{ description | tojson }},
        "author": {"@type": "Person", "name": {{ author | tojson }}},
{% if date_iso %}
        "datePublished": "{{ date_iso }}",
{% endif %}
{% if canonical_url %}
        "url": "{{ canonical_url }}",
{% endif %}
        "wordCount": "{{ word_count }}"
    }
    </script>
    <style>
        body { font-family: -apple-system, BlinkMacSystemFont, "Segoe UI", Roboto, sans-serif;
               max-width: 720px; margin: 0 auto; padding: 2rem 1rem; line-height: 1.7; color: #222; }
        .meta { color: #666; font-size: 0.9rem; display: flex; gap: 1rem; margin-bottom: 2rem; }
        pre { background: #f5f5f5; padding: 1rem; overflow-x: auto; }
        .tags a { display: inline-block; margin-right: 0.5rem; padding: 0.2rem 0.6rem;
                  background: #eef; border-radius: 4px; text-decoration: none; }
    </style>
</head>
<body>
    <article>
        <h1>{{ title }}</h1>
        <div class="meta">
            <span>By <strong>{{ author }}</strong></span>
            <span>{{ date }}</span>
            <span>{{ read_time }}</span>
        </div>
        <div class="content">
            {{ content | safe }}
        </div>
{% if tags %}
        <div class="tags">
{% for tag in tags_list %}
            <a href="{{ tag.url }}" class="tag">{{ tag.name }}</a>
{% endfor %}
        </div>
{% endif %}
    </article>
</body>
</html>
"""

TAG_INDEX_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Tags - {{ site_name }}</title>
    <meta name="description" content="Browse all posts by tag on {{ site_name }}">
</head>
<body>
    <h1>Tags</h1>
    <div class="back-link"><a href="{{ listing_url }}">&larr; Back to all posts</a></div>
{% for tag in tags_list %}
    <div class="tag-section" id="{{ tag.slug }}">
        <h2><a href="#{{ tag.slug }}">{{ tag.name }}</a> <span class="count">({{ tag.post_count }} posts)</span></h2>
        <ul>
{% for post in tag.posts %}
            <li><a href="{{ post.url }}">{{ post.title }}</a> <span class="post-date">{{ post.date }}</span></li>
{% endfor %}
        </ul>
    </div>
{% endfor %}
</body>
</html>
"""

LISTING_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{% if is_first_page %}Blog{% else %}Blog - Page {{ page_number }}{% endif %} - {{ site_name }}</title>
{% if canonical_url %}
    <link rel="canonical" href="{{ canonical_url }}">
{% endif %}
</head>
<body>
    <h1>{% if is_first_page %}Latest Posts{% else %}Posts - Page {{ page_number }}{% endif %}</h1>
    <p><a href="{{ tag_index_url }}">Browse by tag</a></p>
{% for post in posts %}
    <article class="post-card">
        <h2><a href="{{ post.url }}">{{ post.title }}</a></h2>
        <div class="meta">
            <span>By {{ post.author }}</span>
            <span>{{ post.date }}</span>
            <span>{{ post.read_time }}</span>
        </div>
{% if post.description %}
        <p class="post-excerpt">{{ post.description }}</p>
{% endif %}
{% if post.tags %}
        <div class="tags">
{% for tag in post.tags %}
            <a href="{{ tag.url }}">{{ tag.name }}</a>
{% endfor %}
        </div>
{% endif %}
    </article>
{% endfor %}
{% if has_multiple_pages %}
    <nav class="pagination">
{% if has_prev %}
        <a href="{{ prev_url }}">&larr; Newer</a>
{% endif %}
{% for page in pages %}
        {% if page.is_current %}<strong>{{ page.number }}</strong>{% else %}<a href="{{ page.url }}">{{ page.number }}</a>{% endif %}
{% endfor %}
{% if has_next %}
        <a href="{{ next_url }}">Older &rarr;</a>
{% endif %}
    </nav>
{% endif %}
</body>
</html>
"""
