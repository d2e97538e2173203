"""Selectors and tag sets used to locate and walk main page content."""

from __future__ import annotations

# semantic containers tried before the configured selector list
SEMANTIC_CONTAINER_TAGS: tuple[str, ...] = ("article", "main")

UNWANTED_TAGS = frozenset(
    {"script", "style", "noscript", "template", "nav", "header", "footer", "aside", "iframe"}
)

# substrings of class/id values that mark page chrome rather than content
EXCLUDE_PATTERNS: tuple[str, ...] = (
    "nav", "menu", "sidebar", "footer", "header", "comments", "related", "social",
)

# advertising markers only match whole class/id parts ("ad-slot", not "heading")
AD_TOKENS = frozenset({"ad", "ads", "advert", "advertisement", "sponsored"})

UNWANTED_ROLES = frozenset({"navigation", "banner", "complementary", "contentinfo"})

BLOCK_TAGS = frozenset(
    {
        "p", "div", "section", "article", "main",
        "h1", "h2", "h3", "h4", "h5", "h6",
        "li", "td", "th", "blockquote", "pre", "figure",
    }
)
