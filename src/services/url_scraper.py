"""
Content fetching for bookmark enrichment.

`WebContentFetcher` is the network-backed `ContentFetcher` used when a bookmark is
created. Its three calls are best-effort: unreachable pages, bad status codes,
unsupported content types, and missing metadata all produce a fallback value rather
than an exception. Only an empty URL raises.
"""
import ipaddress
import logging
import re
import socket
from dataclasses import dataclass
from io import BytesIO
from typing import Protocol
from urllib.parse import urljoin, urlparse

import httpx
import trafilatura
from bs4 import BeautifulSoup
from pypdf import PdfReader

from services.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

USER_AGENT = 'Mozilla/5.0 (compatible; Athena/1.0)'
DEFAULT_TIMEOUT = 10.0
DEFAULT_SUMMARY_LENGTH = 1000


class ContentFetcher(Protocol):
    """Best-effort page metadata lookups consumed by the bookmark service."""

    async def fetch_title(self, url: str) -> str:
        """Return the page title."""
        ...

    async def fetch_main_image(self, url: str) -> str:
        """Return the page's primary image URL."""
        ...

    async def fetch_content_summary(self, url: str) -> str:
        """Return a short summary of the page's readable content."""
        ...


class SSRFBlockedError(Exception):
    """Raised when a URL targets a private/internal network address."""

    pass


def is_private_ip(ip_str: str) -> bool:
    """
    Check if an IP address is private, loopback, or otherwise internal.

    Args:
        ip_str: IP address string (IPv4 or IPv6).

    Returns:
        True if the IP is private/internal, False if public.
    """
    try:
        ip = ipaddress.ip_address(ip_str)
        return (
            ip.is_private
            or ip.is_loopback
            or ip.is_link_local
            or ip.is_multicast
            or ip.is_reserved
            or ip.is_unspecified
        )
    except ValueError:
        # If we can't parse it, block it to be safe
        return True


def validate_url_not_private(url: str) -> None:
    """
    Validate that a URL does not target a private/internal network.

    Resolves the hostname to check the actual IP address, preventing
    DNS rebinding attacks where a hostname resolves to an internal IP.

    Raises:
        SSRFBlockedError: If the URL targets a private network.
        ValueError: If the URL is malformed or the host cannot be resolved.
    """
    hostname = urlparse(url).hostname

    if not hostname:
        raise ValueError(f"Invalid URL (no hostname): {url}")

    if hostname.lower() in ('localhost', 'localhost.localdomain'):
        raise SSRFBlockedError(f"Blocked request to localhost: {url}")

    try:
        addrinfo = socket.getaddrinfo(hostname, None, socket.AF_UNSPEC, socket.SOCK_STREAM)
    except socket.gaierror as e:
        raise ValueError(f"Could not resolve hostname: {hostname}") from e

    # sockaddr is (ip, port) for IPv4 or (ip, port, flow, scope) for IPv6
    for _, _, _, _, sockaddr in addrinfo:
        ip_str = sockaddr[0]
        if is_private_ip(ip_str):
            raise SSRFBlockedError(
                f"Blocked request to private/internal address: {url} resolves to {ip_str}",
            )


@dataclass
class FetchResult:
    """Result of fetching a URL (raw content before extraction)."""

    content: str | bytes | None  # str for HTML, bytes for PDF
    final_url: str
    status_code: int | None
    content_type: str | None
    error: str | None

    @property
    def is_pdf(self) -> bool:
        """Check if the content type indicates a PDF."""
        return bool(self.content_type and 'application/pdf' in self.content_type.lower())

    @property
    def is_html(self) -> bool:
        """Check if the content type indicates HTML."""
        return bool(self.content_type and 'text/html' in self.content_type.lower())


@dataclass
class ExtractedMetadata:
    """Extracted title, description, and primary image from HTML or PDF."""

    title: str | None
    description: str | None
    image_url: str | None = None


async def fetch_url(url: str, timeout: float = DEFAULT_TIMEOUT) -> FetchResult:  # noqa: ASYNC109, PLR0911
    """
    Fetch content from a URL (HTML or PDF).

    Best-effort fetch that returns error info on failure rather than raising.
    Follows redirects and captures the final URL. URLs resolving to private or
    internal networks are refused, both before the request and after redirects.

    Args:
        url:
            The URL to fetch.
        timeout:
            Request timeout in seconds.

    Returns:
        FetchResult containing content (str for HTML, bytes for PDF) or error info.
    """
    try:
        validate_url_not_private(url)
    except (SSRFBlockedError, ValueError) as e:
        return FetchResult(
            content=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error=str(e),
        )

    try:
        async with httpx.AsyncClient(
            follow_redirects=True,
            timeout=timeout,
            headers={'User-Agent': USER_AGENT},
            http2=True,
        ) as client:
            response = await client.get(url)

            final_url_str = str(response.url)
            try:
                validate_url_not_private(final_url_str)
            except (SSRFBlockedError, ValueError) as e:
                return FetchResult(
                    content=None,
                    final_url=final_url_str,
                    status_code=response.status_code,
                    content_type=None,
                    error=f"Redirect blocked: {e}",
                )

            if not response.is_success:
                return FetchResult(
                    content=None,
                    final_url=final_url_str,
                    status_code=response.status_code,
                    content_type=response.headers.get('content-type', ''),
                    error=f"HTTP {response.status_code}",
                )

            content_type = response.headers.get('content-type', '')

            if 'application/pdf' in content_type.lower():
                return FetchResult(
                    content=response.content,
                    final_url=final_url_str,
                    status_code=response.status_code,
                    content_type=content_type,
                    error=None,
                )
            if 'text/html' in content_type.lower():
                return FetchResult(
                    content=response.text,
                    final_url=final_url_str,
                    status_code=response.status_code,
                    content_type=content_type,
                    error=None,
                )
            return FetchResult(
                content=None,
                final_url=final_url_str,
                status_code=response.status_code,
                content_type=content_type,
                error=f"Unsupported content type: {content_type}",
            )
    except httpx.TimeoutException:
        return FetchResult(
            content=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error="Request timed out",
        )
    except httpx.RequestError as e:
        return FetchResult(
            content=None,
            final_url=url,
            status_code=None,
            content_type=None,
            error=f"Request failed: {e}",
        )


def _meta_content(soup: BeautifulSoup, **attrs: str) -> str | None:
    """Return the stripped content attribute of the first matching <meta>, if any."""
    tag = soup.find('meta', attrs=attrs)
    if tag and tag.get('content'):
        return tag['content'].strip() or None
    return None


def extract_html_metadata(html: str, base_url: str | None = None) -> ExtractedMetadata:
    """
    Extract title, description, and main image from HTML.

    Pure function with no I/O. Uses BeautifulSoup for parsing.

    Title priority: <title>, og:title, twitter:title.
    Description priority: meta description, og:description, twitter:description.
    Image priority: og:image, og:image:url, twitter:image, <link rel="image_src">.
    Relative image URLs are resolved against base_url when given.
    """
    soup = BeautifulSoup(html, 'lxml')

    title = None
    title_tag = soup.find('title')
    if title_tag and title_tag.string:
        title = title_tag.string.strip() or None
    title = (
        title
        or _meta_content(soup, property='og:title')
        or _meta_content(soup, name='twitter:title')
    )

    description = (
        _meta_content(soup, name='description')
        or _meta_content(soup, property='og:description')
        or _meta_content(soup, name='twitter:description')
    )

    image_url = (
        _meta_content(soup, property='og:image')
        or _meta_content(soup, property='og:image:url')
        or _meta_content(soup, name='twitter:image')
    )
    if not image_url:
        link = soup.find('link', rel='image_src')
        if link and link.get('href'):
            image_url = link['href'].strip() or None
    if image_url and base_url:
        image_url = urljoin(base_url, image_url)

    return ExtractedMetadata(title=title, description=description, image_url=image_url)


def extract_html_content(html: str) -> str | None:
    """
    Extract main readable content from HTML using trafilatura.

    Pure function with no I/O. Strips navigation, scripts, styles, and other
    non-content elements. Returns None if extraction fails.
    """
    return trafilatura.extract(html)


def extract_pdf_metadata(pdf_bytes: bytes) -> ExtractedMetadata:
    """
    Extract title and description from PDF document metadata.

    Uses /Title and /Subject. PDF metadata is often missing or auto-generated
    junk, so expect None values frequently.
    """
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        meta = reader.metadata

        title = meta.title if meta and meta.title else None
        description = meta.subject if meta and meta.subject else None

        return ExtractedMetadata(title=title, description=description)
    except Exception:
        return ExtractedMetadata(title=None, description=None)


def extract_pdf_content(pdf_bytes: bytes) -> str | None:
    """
    Extract text content from all PDF pages.

    Returns None if extraction fails or the PDF contains no extractable text
    (e.g., scanned images).
    """
    try:
        reader = PdfReader(BytesIO(pdf_bytes))
        text_parts = []
        for page in reader.pages:
            text = page.extract_text()
            if text:
                text_parts.append(text)

        return '\n'.join(text_parts) if text_parts else None
    except Exception:
        return None


def summarize_text(text: str | None, max_length: int = DEFAULT_SUMMARY_LENGTH) -> str:
    """
    Collapse whitespace and truncate on a word boundary.

    Text longer than max_length is cut at the last space before the limit and
    suffixed with an ellipsis, so the result never exceeds max_length characters.
    """
    if not text:
        return ''
    collapsed = re.sub(r'\s+', ' ', text).strip()
    if len(collapsed) <= max_length:
        return collapsed
    cut = collapsed[:max_length - 1]
    if ' ' in cut:
        cut = cut[:cut.rindex(' ')]
    return cut.rstrip(' .,;:') + '…'


class WebContentFetcher:
    """
    ContentFetcher that downloads the page and extracts metadata locally.

    Every call fetches the URL independently with a bounded timeout. Failures are
    logged at debug level and answered with a fallback: the URL itself for the
    title, an empty string for the image and summary.
    """

    def __init__(
        self,
        timeout: float = DEFAULT_TIMEOUT,
        summary_max_length: int = DEFAULT_SUMMARY_LENGTH,
    ) -> None:
        self.timeout = timeout
        self.summary_max_length = summary_max_length

    async def _fetch(self, url: str, stage: str) -> FetchResult | None:
        if not url or not url.strip():
            raise InvalidArgumentError("URL cannot be empty")
        result = await fetch_url(url, self.timeout)
        if result.error:
            logger.debug("Failed to fetch %s from URL %s: %s", stage, url, result.error)
            return None
        return result

    async def fetch_title(self, url: str) -> str:
        """Page title, or the URL itself when none can be found."""
        result = await self._fetch(url, 'title')
        if result is None:
            return url
        if result.is_pdf:
            metadata = extract_pdf_metadata(result.content)
        else:
            metadata = extract_html_metadata(result.content)
        if not metadata.title:
            logger.debug("No title found for URL %s", url)
            return url
        return metadata.title

    async def fetch_main_image(self, url: str) -> str:
        """Primary image URL from Open Graph/Twitter tags, or empty string."""
        result = await self._fetch(url, 'main image')
        if result is None or not result.is_html:
            return ''
        metadata = extract_html_metadata(result.content, base_url=result.final_url)
        return metadata.image_url or ''

    async def fetch_content_summary(self, url: str) -> str:
        """Truncated readable text, falling back to the meta description."""
        result = await self._fetch(url, 'content summary')
        if result is None:
            return ''
        if result.is_pdf:
            text = extract_pdf_content(result.content)
            fallback = extract_pdf_metadata(result.content).description
        else:
            text = extract_html_content(result.content)
            fallback = extract_html_metadata(result.content).description
        if not text:
            logger.debug("No readable content for URL %s, using description", url)
            text = fallback
        return summarize_text(text, self.summary_max_length)
