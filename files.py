import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, List, Optional

from werkzeug.datastructures import FileStorage

import utils
from config import ServerConfig
from errors import DirectoryUnreadable, EncodingError, FileNotFound, InvalidUploadName, PersistError
from network import AddressResolver

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 1024 * 1024


@dataclass
class FileRecord:
    name: str
    share_url: str
    size: int
    qr: Optional[str] = None

    @property
    def size_human(self) -> str:
        return utils.human_size(self.size)

    def to_dict(self) -> dict:
        return {"name": self.name, "url": self.share_url, "size": self.size}


@dataclass
class UploadResult:
    name: str
    url: str
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> dict:
        d = {"name": self.name, "url": self.url}
        if self.error is not None:
            d["error"] = self.error
        return d


class FileListing:
    """
    Regular files of the working directory, rescanned on every iteration.
    Order follows the filesystem and is not sorted.
    """

    def __init__(self, catalog: "FileCatalog"):
        self.catalog = catalog

    def __iter__(self) -> Iterator[FileRecord]:
        return self.catalog._scan()


class FileCatalog:
    """Lists the files available for sharing."""

    def __init__(self, config: ServerConfig, resolver: AddressResolver):
        self.config = config
        self.resolver = resolver

    def list(self) -> FileListing:
        # Fail here rather than halfway through a page render.
        try:
            with os.scandir(self.config.working_dir):
                pass
        except OSError as e:
            logger.error("cannot open %s: %s", self.config.working_dir, e)
            raise DirectoryUnreadable() from e
        return FileListing(self)

    def _scan(self) -> Iterator[FileRecord]:
        found = []
        try:
            with os.scandir(self.config.working_dir) as it:
                for entry in it:
                    if not entry.is_file(follow_symlinks=False):
                        continue
                    try:
                        found.append((entry, entry.stat(follow_symlinks=False).st_size))
                    except FileNotFoundError:
                        continue  # removed mid-scan
        except OSError as e:
            logger.error("cannot read %s: %s", self.config.working_dir, e)
            raise DirectoryUnreadable() from e

        base_url = self.resolver.resolve()
        for entry, size in found:
            url = utils.build_file_url(base_url, entry.name)
            qr = None
            if self.config.per_file_qr:
                try:
                    qr = utils.make_qr_png_b64(url)
                except EncodingError as e:
                    logger.warning("no QR code for %s: %s", entry.name, e)
            yield FileRecord(name=entry.name, share_url=url, size=size, qr=qr)


def upload_name(declared: Optional[str]) -> str:
    """Reduce a client supplied file name to a bare name inside the working directory."""
    name = (declared or "").replace("\\", "/").rsplit("/", 1)[-1]
    if name in ("", ".", "..") or "\x00" in name:
        raise InvalidUploadName(f"Invalid file name: {declared!r}")
    return name


class UploadIngestor:
    """Stores uploaded files in the working directory under their original names."""

    def __init__(self, config: ServerConfig, resolver: AddressResolver):
        self.config = config
        self.resolver = resolver

    def _persist(self, file: FileStorage, path: Path):
        logger.info("saving to %s", path)
        try:
            out = open(path, "wb")
        except OSError as e:
            # Nothing was written; an existing file stays untouched.
            logger.error("failed to open %s: %s", path, e)
            raise PersistError(f"Could not save {path.name}: {e.strerror or e}") from e
        try:
            with out:
                shutil.copyfileobj(file.stream, out, COPY_BUFFER_SIZE)
        except OSError as e:
            logger.error("failed to save %s: %s", path, e)
            try:
                path.unlink()
            except OSError:
                logger.debug("no partial file to remove at %s", path)
            raise PersistError(f"Could not save {path.name}: {e.strerror or e}") from e

    def ingest(self, files: Iterable[FileStorage]) -> List[UploadResult]:
        """
        Save each file in order. A failed file is reported on its own result;
        the others are still saved. Existing files with the same name are replaced.
        """
        # Browsers send an unnamed empty part when no file was chosen.
        files = [f for f in files if f and f.filename]
        names = [upload_name(f.filename) for f in files]
        base_url = self.resolver.resolve()

        results = []
        for file, name in zip(files, names):
            url = utils.build_file_url(base_url, name)
            try:
                self._persist(file, self.config.working_dir / name)
            except PersistError as e:
                results.append(UploadResult(name=name, url=url, error=e.description))
            else:
                results.append(UploadResult(name=name, url=url))
        return results

    def ingest_or_raise(self, files: Iterable[FileStorage]) -> List[UploadResult]:
        """Like ingest, but stop at the first file that cannot be saved."""
        files = [f for f in files if f and f.filename]
        names = [upload_name(f.filename) for f in files]
        base_url = self.resolver.resolve()

        results = []
        for file, name in zip(files, names):
            self._persist(file, self.config.working_dir / name)
            results.append(UploadResult(name=name, url=utils.build_file_url(base_url, name)))
        return results


class DownloadServer:
    """Maps a requested name back to a file in the working directory."""

    def __init__(self, config: ServerConfig):
        self.config = config

    def resolve(self, requested_name: str) -> Path:
        """
        Get the path of a shared file.
        Raises FileNotFound for unknown files and for any name that could
        point outside the working directory.
        """
        base = self.config.working_dir
        name = requested_name or ""
        if (
            name in ("", ".", "..")
            or "/" in name
            or "\\" in name
            or "\x00" in name
            or os.path.isabs(name)
        ):
            logger.warning("rejected download name %r", requested_name)
            raise FileNotFound()

        path = base / name
        try:
            full = path.resolve()
        except (OSError, RuntimeError):
            raise FileNotFound()

        # Security check: Ensure path is directly inside the working directory
        try:
            if full.parent != base or path.is_symlink() or not full.is_file():
                raise FileNotFound()
        except OSError:
            raise FileNotFound()
        return full

    def open(self, requested_name: str) -> BinaryIO:
        path = self.resolve(requested_name)
        try:
            return open(path, "rb")
        except OSError:
            raise FileNotFound()
