"""Remote project index client for CurseForge-style file listings.

Locates the newest downloadable file on a project's `/files` page and
downloads it. Only the first row of the listing is considered; release
phase (alpha/beta/release) is not inspected.
"""

import logging
from html.parser import HTMLParser
from urllib.parse import urljoin

import httpx

from .exceptions import FetchError
from .exceptions import PackageNotFoundError
from .schema import SourceKind

logger = logging.getLogger(__name__)

DEFAULT_HOSTS: dict[SourceKind, str] = {
    SourceKind.CURSE: "https://wow.curseforge.com",
    SourceKind.WOWACE: "https://www.wowace.com",
}


class DownloadLinkParser(HTMLParser):
    """Find the download href of the first row in a project file listing.

    Matches `tr.project-file-list-item div.project-file-download-button a.fa-icon-download`.
    """

    def __init__(self):
        super().__init__()
        self.href: str | None = None
        self._rows_seen = 0
        self._in_row = False
        self._button_depth = 0

    def handle_starttag(self, tag, attrs):
        if self.href is not None:
            return
        attributes = dict(attrs)
        classes = (attributes.get("class") or "").split()

        if tag == "tr" and "project-file-list-item" in classes:
            self._rows_seen += 1
            self._in_row = self._rows_seen == 1
        elif tag == "div" and self._in_row:
            if self._button_depth:
                self._button_depth += 1
            elif "project-file-download-button" in classes:
                self._button_depth = 1
        elif tag == "a" and self._button_depth and "fa-icon-download" in classes:
            self.href = attributes.get("href") or None

    def handle_endtag(self, tag):
        if tag == "tr":
            self._in_row = False
            self._button_depth = 0
        elif tag == "div" and self._button_depth:
            self._button_depth -= 1


def find_download_href(html: str) -> str | None:
    """Return the first listed file's download href, or None if there is none."""
    parser = DownloadLinkParser()
    parser.feed(html)
    parser.close()
    return parser.href


class ProjectIndex:
    """
    Remote index over CurseForge and WowAce project pages.

    Args:
        client: Optional shared httpx.AsyncClient (a short-lived client is
            created per call otherwise)
        hosts: Base URL per remote source kind

    Example:
        >>> index = ProjectIndex()
        >>> data = await index.fetch_archive("deadly-boss-mods", SourceKind.CURSE)
    """

    def __init__(self, client: httpx.AsyncClient | None = None, hosts: dict[SourceKind, str] | None = None):
        self.client = client
        self.hosts = hosts or DEFAULT_HOSTS

    def listing_url(self, name: str, kind: SourceKind) -> str:
        """URL of the project's file listing page."""
        host = self.hosts.get(kind)
        if host is None:
            raise FetchError(f"No remote index for source kind '{kind}'", context={"name": name, "kind": str(kind)})
        return f"{host}/projects/{name}/files"

    async def fetch_archive(self, name: str, kind: SourceKind) -> bytes:
        listing_url = self.listing_url(name, kind)
        context = {"name": name, "kind": str(kind), "url": listing_url}

        try:
            if self.client is not None:
                return await self._fetch(self.client, name, listing_url, context)
            async with httpx.AsyncClient(follow_redirects=True, timeout=30) as client:
                return await self._fetch(client, name, listing_url, context)
        except httpx.HTTPError as e:
            raise FetchError(f"Unable to download {name}: {e}", context=context) from e

    async def _fetch(self, client: httpx.AsyncClient, name: str, listing_url: str, context: dict) -> bytes:
        logger.debug(f"Fetching file listing {listing_url}")
        response = await client.get(listing_url)
        if response.status_code == 404:
            raise PackageNotFoundError(f"Project '{name}' not found at {listing_url}", context=context)
        response.raise_for_status()

        href = find_download_href(response.text)
        if href is None:
            raise PackageNotFoundError(f"No downloadable file listed for '{name}'", context=context)

        download_url = urljoin(listing_url, href)
        logger.info(f"Downloading {name} from {download_url}")
        response = await client.get(download_url, follow_redirects=True)
        response.raise_for_status()
        return response.content
