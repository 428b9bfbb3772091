"""URL helpers for search results: blocklist filtering and order-preserving dedup."""

from typing import Iterable
from urllib.parse import urlparse


# Hostname fragments of sites that never carry educational carving content
BLOCKED_HOST_FRAGMENTS = (
    # Social media
    "youtube.com",
    "facebook.com",
    "instagram.com",
    "twitter.com",
    "pinterest.com",
    "tiktok.com",
    # Shopping platforms
    "amazon.",
    "ebay.",
    "etsy.com",
    "alibaba.com",
    "aliexpress.com",
    # Generic storefront subdomains
    "shop.",
    "store.",
    "cart.",
    "checkout.",
    # Price comparison
    "idealo.",
    "geizhals.",
    "billiger.de",
    "preisvergleich.",
    # Shopping words in the domain
    "kaufen",
    "buy",
    "shopping",
    "market",
)

BLOCKED_PATH_FRAGMENTS = (
    "/shop/",
    "/cart/",
    "/checkout/",
    "/buy/",
    "/product/",
    "/products/",
)


def is_allowed_url(url: str) -> bool:
    """Return True if the URL is an http(s) page outside the shopping/social blocklist."""
    if not url:
        return False

    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return False

    if parsed.scheme not in ("http", "https") or not parsed.hostname:
        return False

    hostname = parsed.hostname.lower()
    pathname = parsed.path.lower()

    if any(fragment in hostname for fragment in BLOCKED_HOST_FRAGMENTS):
        return False

    if any(fragment in pathname for fragment in BLOCKED_PATH_FRAGMENTS):
        return False

    return True


def dedupe_urls(urls: Iterable[str]) -> list[str]:
    """Drop repeated URLs, keeping the first occurrence and the provider's rank order."""
    seen: set[str] = set()
    unique = []
    for url in urls:
        url = url.strip()
        if not url or url in seen:
            continue
        seen.add(url)
        unique.append(url)
    return unique
