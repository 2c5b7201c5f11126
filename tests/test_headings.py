"""Heading cleanup, topic validation, topic inference and front-matter filtering."""

from __future__ import annotations

import pytest

from core.headings import (
    HEADING_RULES,
    clean_heading,
    failed_heading_rule,
    infer_heading_from_text,
    is_intro_or_toc_chunk,
    is_likely_heading,
    is_valid_topic,
    normalize_heading,
    topic_vocabulary,
)

RULES = {rule.name: rule for rule in HEADING_RULES}


@pytest.mark.parametrize(
    "heading, expected",
    [
        ("11", False),
        ("1 / 12", False),
        ("Access Control", True),
        ("General", False),
        ("general", False),
        ("C++", False),
        ("RBAC", True),
    ],
)
def test_is_valid_topic(heading, expected):
    assert is_valid_topic(heading, non_topic_names=[]) is expected


def test_is_valid_topic_rejects_author_byline():
    assert not is_valid_topic("Notes by Jane Doe", non_topic_names=["jane doe"])
    assert is_valid_topic("Threat Modeling", non_topic_names=["jane doe"])


@pytest.mark.parametrize(
    "raw, cleaned",
    [
        ("Access Control 2 / 12", "Access Control"),
        ("🔒 Access Control", "Access Control"),
        ("  ✅  Input Validation  3 / 9 ", "Input Validation"),
        ("Threat Modeling", "Threat Modeling"),
    ],
)
def test_clean_heading(raw, cleaned):
    assert clean_heading(raw) == cleaned


def test_infer_heading_from_part_marker():
    text = "Part 2: Containment Mechanisms. Sandboxes isolate untrusted code."
    assert infer_heading_from_text(text) == "Containment Mechanisms"


def test_infer_heading_from_numbered_section():
    text = "see below 1.3. Containment Mechanisms. Sandboxing limits damage."
    assert infer_heading_from_text(text) == "Containment Mechanisms"


def test_infer_heading_from_leading_phrase():
    text = "Threat Modeling. The process of enumerating attackers and assets."
    assert infer_heading_from_text(text) == "Threat Modeling"


def test_infer_heading_falls_back_to_generic_label():
    assert infer_heading_from_text("lowercase text without markers") == "Course Notes"
    assert infer_heading_from_text("lowercase text", default="Misc") == "Misc"


def test_normalize_heading_prefers_clean_valid_heading():
    assert normalize_heading("🔒 Access Control 1 / 4", "anything", []) == "Access Control"
    assert normalize_heading("7", "Part 3: Secure Design. Body.", []) == "Secure Design"


@pytest.mark.parametrize(
    "text, page, expected",
    [
        ("A full title page with plenty of text on it, still the title page.", 1, True),
        ("Contents " + "." * 50 + " 3", 5, True),
        ("Hello world", 2, True),
        ("Short but late", 9, False),
        (
            "Least privilege grants only the minimum access necessary to do a job well, "
            "and nothing beyond what the role requires.",
            2,
            False,
        ),
    ],
)
def test_is_intro_or_toc_chunk(text, page, expected):
    assert is_intro_or_toc_chunk(text, page) is expected


def test_topic_vocabulary_is_distinct_and_valid():
    headings = ["Access Control", "General", "11", "Access Control 2 / 3", "Threat Modeling"]
    assert topic_vocabulary(headings, []) == ["Access Control", "Threat Modeling"]


def test_heading_rules_are_named_and_ordered():
    assert [r.name for r in HEADING_RULES] == [
        "min_alpha",
        "not_page_fraction",
        "not_bare_number",
        "not_dot_leaders",
        "not_connective_fragment",
    ]


def test_each_heading_rule_in_isolation():
    assert not RULES["min_alpha"].check("abc 12")
    assert not RULES["not_page_fraction"].check("3 / 12")
    assert not RULES["not_bare_number"].check("42")
    assert not RULES["not_dot_leaders"].check("Intro ........")
    assert not RULES["not_connective_fragment"].check("the end of it")
    assert RULES["not_connective_fragment"].check("The Principle of Least Privilege")
    assert RULES["not_connective_fragment"].check("Access Control")


def test_failed_heading_rule_reports_first_failure():
    assert failed_heading_rule("12") == "min_alpha"
    assert failed_heading_rule("and then some more") == "not_connective_fragment"
    assert failed_heading_rule("Access Control") is None
    assert is_likely_heading("🔐 Defense in Depth")
