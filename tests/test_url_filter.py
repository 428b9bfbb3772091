"""Tests for search result URL filtering and dedup."""

import pytest

from schnitzarchiv.services.url_filter import dedupe_urls, is_allowed_url


@pytest.mark.parametrize(
    "url",
    [
        "https://www.holzwerken.net/Anleitungen/Kerbschnitzen",
        "http://schnitzforum.de/thread/123",
        "https://example.org/blog/lindenholz-schnitzen",
    ],
)
def test_allows_regular_pages(url):
    assert is_allowed_url(url)


@pytest.mark.parametrize(
    "url",
    [
        "https://www.youtube.com/watch?v=abc",
        "https://www.amazon.de/Schnitzmesser/dp/B000",
        "https://shop.holzprofi.de/messer",
        "https://www.idealo.de/preisvergleich/Schnitzmesser.html",
        "https://schnitzmesser-kaufen.de/",
        "https://example.org/shop/schnitzeisen",
        "https://example.org/products/set-12",
    ],
)
def test_blocks_social_media_and_shopping(url):
    assert not is_allowed_url(url)


@pytest.mark.parametrize("url", ["", "ftp://example.org/file", "mailto:info@example.org", "not a url"])
def test_rejects_non_http_urls(url):
    assert not is_allowed_url(url)


def test_dedupe_keeps_first_occurrence_in_rank_order():
    urls = ["https://a.de/", "https://b.de/", "https://a.de/", " https://c.de/ ", "", "https://b.de/"]
    assert dedupe_urls(urls) == ["https://a.de/", "https://b.de/", "https://c.de/"]
