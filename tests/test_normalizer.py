import pytest

from site_lens.crawler.normalizer import normalize_url, same_host

BASE = "https://example.com/docs/guide/"


@pytest.mark.parametrize(
    "link,expected",
    [
        ("/about", "https://example.com/about"),
        ("intro", "https://example.com/docs/guide/intro"),
        ("../api?x=1", "https://example.com/docs/api?x=1"),
        ("//cdn.example.com/a.png", "https://cdn.example.com/a.png"),
        ("https://example.com/page#section", "https://example.com/page"),
        ("HTTPS://Example.COM/Path", "https://example.com/Path"),
        ("https://example.com", "https://example.com/"),
        ("  /padded  ", "https://example.com/padded"),
    ],
)
def test_resolves_and_strips_fragment(link, expected):
    assert normalize_url(link, BASE) == expected


@pytest.mark.parametrize(
    "link",
    [
        "",
        "#",
        "#top",
        "mailto:someone@example.com",
        "tel:+123456",
        "javascript:void(0)",
        "data:text/html,hi",
        "ftp://example.com/file",
        "http://",
        "http://example.com:notaport/",
    ],
)
def test_rejects_non_navigable(link):
    assert normalize_url(link, BASE) is None


def test_relative_link_without_base_is_rejected():
    assert normalize_url("/about") is None


def test_fragment_and_relative_forms_collapse():
    forms = [
        "/about",
        "/about#team",
        "https://example.com/about",
        "https://example.com/about#",
        "//example.com/about",
    ]
    assert {normalize_url(f, "https://example.com/") for f in forms} == {"https://example.com/about"}


@pytest.mark.parametrize(
    "link",
    [
        "https://example.com/a/b?q=1#frag",
        "HTTP://EXAMPLE.com",
        "/relative/path/",
        "../up",
        "//other.org/x",
    ],
)
def test_idempotent(link):
    once = normalize_url(link, BASE)
    assert once is not None
    assert normalize_url(once) == once
    assert normalize_url(once, BASE) == once


def test_same_host_ignores_scheme_and_port():
    assert same_host("http://example.com:8080/a", "https://example.com/")
    assert not same_host("https://sub.example.com/", "https://example.com/")
