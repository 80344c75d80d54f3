from __future__ import annotations

from typing import Dict, Iterable, List

from gallery_converter.models.conversion import ScopeInfo, ScopeOption

# Post types that belong to the gallery plugins or page builders themselves.
EXCLUDED_KEYWORDS = ("ngg", "nextgen", "photocrati", "imagely", "elementor")
EXCLUDED_NAMES = ("e-landing-page", "ngg_gallery", "ngg_album", "ngg_pictures")
EXCLUDED_LABELS = ("nextgen", "gallery")

# Core post types; posts and pages are always offered first.
BUILTIN_SCOPES = (
    "post",
    "page",
    "attachment",
    "revision",
    "nav_menu_item",
    "custom_css",
    "customize_changeset",
    "oembed_cache",
    "user_request",
    "wp_block",
    "wp_template",
    "wp_template_part",
    "wp_global_styles",
    "wp_navigation",
    "wp_font_family",
    "wp_font_face",
)

DEFAULT_OPTIONS: List[Dict[str, str]] = [
    {"value": "post", "label": "Posts"},
    {"value": "page", "label": "Pages"},
]


def is_excluded(scope: ScopeInfo) -> bool:
    """
    True when a post type must never be offered for conversion.

    Names and labels are compared case-insensitively.
    """
    name = (scope.name or "").lower()
    label = (scope.label or "").lower()
    if any(keyword in name or keyword in label for keyword in EXCLUDED_KEYWORDS):
        return True
    if name in EXCLUDED_NAMES:
        return True
    return any(word in label or word in name for word in EXCLUDED_LABELS)


def eligible_scopes(scopes: Iterable[ScopeInfo]) -> List[ScopeOption]:
    """Posts and Pages, followed by every custom post type that is not excluded."""
    options = [ScopeOption(**option) for option in DEFAULT_OPTIONS]
    for scope in scopes:
        if scope.name in BUILTIN_SCOPES or is_excluded(scope):
            continue
        options.append(ScopeOption(value=scope.name, label=scope.label or scope.name))
    return options
