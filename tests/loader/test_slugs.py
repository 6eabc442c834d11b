"""Tests for heading slug generation."""

from __future__ import annotations

from docsite.loader import SlugRegistry, slugify


def test_slugify_matches_github_style() -> None:
    assert slugify("Section 1") == "section-1"
    assert slugify("What's new?") == "whats-new"
    assert slugify("Install `docsite` now") == "install-docsite-now"
    assert slugify("Links [here](other.md)") == "links-here"


def test_slugify_is_idempotent() -> None:
    title = "Getting Started: The Basics"
    assert slugify(title) == slugify(title)
    assert slugify(slugify(title)) == slugify(title)


def test_registry_suffixes_repeated_slugs() -> None:
    registry = SlugRegistry()
    assert registry.add("Usage") == "usage"
    assert registry.add("Usage") == "usage-1"
    assert registry.add("Usage") == "usage-2"
    assert registry.slugs == frozenset({"usage", "usage-1", "usage-2"})


def test_registry_avoids_collision_with_literal_suffix() -> None:
    registry = SlugRegistry()
    first = registry.add("Usage 1")
    second = registry.add("Usage")
    third = registry.add("Usage")

    assert first == "usage-1"
    assert second == "usage"
    assert third == "usage-2"
    assert len({first, second, third}) == 3
