"""Fetch template sources onto the local filesystem.

Builtin and local templates are used in place.  GitHub repositories are
downloaded as a tarball from ``codeload.github.com`` and URL sources as a
``.tar.gz``/``.tgz``/``.zip`` archive, both with ``httpx``.  Downloaded
templates are kept in a cache directory keyed by the source id and reused until
they are older than ``cache_ttl`` seconds.
"""

from __future__ import annotations

import asyncio
import hashlib
import shutil
import tarfile
import time
import zipfile
from pathlib import Path, PurePosixPath

import httpx
from pydantic import BaseModel

from createkit.errors import CreateError, ErrorCode
from createkit.result import Err, Ok, Result
from createkit.templates.metadata import TemplateMetadata, TemplateMetadataManager
from createkit.templates.resolver import TemplateResolver, TemplateSource, get_source_id
from createkit.utils import create_progress, ensure_dir, print_info

CODELOAD_URL = "https://codeload.github.com"
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "createkit"


class FetchedTemplate(BaseModel):
    """A template available on disk, with its metadata."""

    path: Path
    metadata: TemplateMetadata


class TemplateFetcher:
    """Makes a ``TemplateSource`` available as a local directory.

    Args:
        resolver: Used to locate builtin templates.
        metadata_manager: Loads ``template.json`` from the fetched directory.
        cache_dir: Where downloaded templates are kept; ``None`` disables the
            cache and downloads into the per-call work directory.
        cache_ttl: Seconds a cached download stays fresh.
        timeout: HTTP timeout in seconds.
    """

    def __init__(
        self,
        resolver: TemplateResolver | None = None,
        metadata_manager: TemplateMetadataManager | None = None,
        cache_dir: str | Path | None = DEFAULT_CACHE_DIR,
        cache_ttl: int = 3600,
        timeout: float = 60.0,
    ) -> None:
        self.resolver = resolver or TemplateResolver()
        self.metadata_manager = metadata_manager or TemplateMetadataManager()
        self.cache_dir = Path(cache_dir) if cache_dir else None
        self.cache_ttl = cache_ttl
        self.timeout = timeout

    async def fetch(
        self, source: TemplateSource, workdir: str | Path
    ) -> Result[FetchedTemplate, CreateError]:
        """Fetch *source* and load its metadata.

        Args:
            source: A resolved (ideally validated) template source.
            workdir: Scratch directory for downloads when caching is off.
        """
        try:
            match source.type:
                case "builtin":
                    path = self.resolver.get_builtin_template_path(source.location)
                case "local":
                    path = Path(source.location)
                case "github" | "url":
                    path = await self._fetch_remote(source, Path(workdir))
                case _:
                    raise CreateError(
                        ErrorCode.TEMPLATE_INVALID, f"Unsupported template source: {source.type}"
                    )
        except CreateError as exc:
            return Err(exc)

        if not path.is_dir():
            return Err(
                CreateError(ErrorCode.TEMPLATE_NOT_FOUND, f"Template directory not found: {path}")
            )

        match self.metadata_manager.load(path):
            case Ok(value=metadata):
                return Ok(FetchedTemplate(path=path, metadata=metadata))
            case Err() as failure:
                return failure

    def clear_cache(self) -> None:
        """Delete every cached download."""
        if self.cache_dir and self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)

    # ------------------------------------------------------------------
    # Remote sources
    # ------------------------------------------------------------------

    def archive_url(self, source: TemplateSource) -> str:
        """URL of the archive to download for a remote *source*."""
        if source.type == "github":
            return f"{CODELOAD_URL}/{source.location}/tar.gz/{source.ref or 'HEAD'}"
        return source.location

    async def _fetch_remote(self, source: TemplateSource, workdir: Path) -> Path:
        key = hashlib.sha256(get_source_id(source).encode("utf-8")).hexdigest()[:16]
        base = (self.cache_dir or workdir) / key
        root = base / "template"

        if self.cache_dir and self._is_fresh(root):
            print_info(f"Using cached template for {source.location}")
        else:
            if base.exists():
                shutil.rmtree(base)
            base.mkdir(parents=True)
            url = self.archive_url(source)
            archive = base / _archive_name(url)
            with create_progress() as progress:
                progress.add_task(f"Downloading {source.location}...", total=None)
                await self._download(url, archive)
            await asyncio.to_thread(extract_archive, archive, root)
            archive.unlink()

        template_root = _single_child_dir(root)
        if source.subdir:
            if ".." in PurePosixPath(source.subdir).parts:
                raise CreateError(
                    ErrorCode.PATH_TRAVERSAL_ATTEMPT,
                    f"Template subdirectory must not contain '..': {source.subdir}",
                )
            template_root = template_root / source.subdir
            if not template_root.is_dir():
                raise CreateError(
                    ErrorCode.TEMPLATE_NOT_FOUND,
                    f"Subdirectory {source.subdir!r} not found in {source.location}",
                )
        return template_root

    async def _download(self, url: str, destination: Path) -> None:
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout, connect=10.0),
                follow_redirects=True,
            ) as client:
                response = await client.get(url)
                response.raise_for_status()
                await asyncio.to_thread(destination.write_bytes, response.content)
        except httpx.HTTPStatusError as exc:
            code = (
                ErrorCode.TEMPLATE_NOT_FOUND
                if exc.response.status_code == 404
                else ErrorCode.TEMPLATE_FETCH_FAILED
            )
            raise CreateError(
                code, f"Download failed with HTTP {exc.response.status_code}: {url}"
            ) from exc
        except httpx.TimeoutException as exc:
            raise CreateError(
                ErrorCode.TEMPLATE_FETCH_FAILED, f"Download timed out after {self.timeout}s: {url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise CreateError(ErrorCode.TEMPLATE_FETCH_FAILED, f"Download failed: {url}: {exc}") from exc

    def _is_fresh(self, root: Path) -> bool:
        if not root.is_dir():
            return False
        return time.time() - root.stat().st_mtime < self.cache_ttl


# ---------------------------------------------------------------------------
# Archive helpers
# ---------------------------------------------------------------------------


def extract_archive(archive: Path, destination: Path) -> None:
    """Extract a tar or zip *archive* into *destination*.

    Members that would land outside *destination* (absolute paths, ``..``
    segments, links) abort the extraction with ``PATH_TRAVERSAL_ATTEMPT``.
    """
    ensure_dir(destination)
    if zipfile.is_zipfile(archive):
        with zipfile.ZipFile(archive) as zf:
            for name in zf.namelist():
                _check_member(name)
            zf.extractall(destination)
        return

    try:
        with tarfile.open(archive, "r:*") as tf:
            members = tf.getmembers()
            for member in members:
                _check_member(member.name)
                if member.issym() or member.islnk():
                    raise CreateError(
                        ErrorCode.PATH_TRAVERSAL_ATTEMPT,
                        f"Archive contains a link: {member.name}",
                    )
            if hasattr(tarfile, "data_filter"):
                tf.extractall(destination, members=members, filter="data")
            else:
                tf.extractall(destination, members=members)
    except tarfile.TarError as exc:
        raise CreateError(
            ErrorCode.TEMPLATE_INVALID, f"Unsupported or corrupt template archive: {exc}"
        ) from exc


def _check_member(name: str) -> None:
    path = PurePosixPath(name.replace("\\", "/"))
    if path.is_absolute() or ".." in path.parts:
        raise CreateError(
            ErrorCode.PATH_TRAVERSAL_ATTEMPT,
            f"Archive member escapes the extraction directory: {name}",
        )


def _single_child_dir(root: Path) -> Path:
    children = list(root.iterdir())
    if len(children) == 1 and children[0].is_dir():
        return children[0]
    return root


def _archive_name(url: str) -> str:
    lowered = url.lower().split("?", 1)[0]
    if lowered.endswith(".zip"):
        return "template.zip"
    return "template.tar.gz"
