import logging
import re

import requests
from bs4 import BeautifulSoup

from applymate.config import settings
from applymate.services.llm_client import parse_job_posting

logger = logging.getLogger(__name__)

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)


class JobPageFetchError(Exception):
    """The posting page could not be downloaded."""


def fetch_job_page(url: str) -> str:
    try:
        response = requests.get(
            url,
            timeout=settings.job_fetch_timeout_seconds,
            headers={"User-Agent": USER_AGENT, "Accept": "text/html,application/xhtml+xml"},
        )
        response.raise_for_status()
    except requests.RequestException as e:
        logger.warning("Job page fetch failed url=%s: %s", url, e)
        raise JobPageFetchError(str(e)) from e
    return response.text


def html_to_text(html: str, max_chars: int | None = None) -> str:
    """Visible text of an HTML page, whitespace-collapsed and truncated."""
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript", "svg", "template"]):
        tag.decompose()
    text = re.sub(r"\s+", " ", soup.get_text(" ")).strip()
    limit = max_chars if max_chars is not None else settings.job_page_max_chars
    return text[:limit]


def parse_job_url(url: str) -> dict[str, str]:
    """Fetch a posting page and extract structured job fields from it."""
    page_text = html_to_text(fetch_job_page(url))
    if not page_text:
        raise ValueError("Job page has no readable text")
    logger.info("Parsing job page url=%s chars=%d", url, len(page_text))
    return parse_job_posting(page_text, url)
