"""
=============================================================================
PATH RESOLUTION
=============================================================================

Turns a request target into a file and opens it.

    Target              Resolved path (relative to root_dir)
    ──────────────────  ─────────────────────────────────────
    /                   index.html          (default document)
    /css/site.css       css/site.css        (leading "/" stripped)
    /a.html?x=1         a.html?x=1          (query is NOT stripped)
    /../secret          ../secret           (NOT normalized, see below)

=============================================================================
PATH TRAVERSAL
=============================================================================

By default the stripped target is opened exactly as given, so
"/../secret" reads a file next to the document root and "//etc/passwd"
reads /etc/passwd. That is how this server has always behaved.

With confine_to_root=True the real path (symlinks and ".." resolved) must
stay inside the real root directory; anything else is refused and the
client gets the same 404 as for a missing file.

    real_root = realpath(root_dir)
    real_path = realpath(root_dir / resolved)
    commonpath(real_root, real_path) == real_root ?  open : 404

=============================================================================
"""

import os
import stat
import logging
from typing import BinaryIO, Iterator, Optional


logger = logging.getLogger(__name__)


class OpenFile:
    """
    A file opened for one response.

    Owns the file object until close(). The size is taken once from
    fstat() when opened; chunks() never yields more than that many
    bytes, so the body always matches the Content-Length already sent.
    """

    def __init__(self, fileobj: BinaryIO, size: int, path: str):
        self.fileobj = fileobj
        self.size = size
        self.path = path

    def chunks(self, chunk_size: int) -> Iterator[bytes]:
        """
        Yield the file's bytes in chunks of at most chunk_size.

        Stops after size bytes, or earlier if the file was truncated
        since it was opened.
        """
        remaining = self.size
        while remaining > 0:
            chunk = self.fileobj.read(min(chunk_size, remaining))
            if not chunk:
                return
            remaining -= len(chunk)
            yield chunk

    def close(self):
        self.fileobj.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class PathResolver:
    """
    Maps request targets to files under a root directory.

    Usage:
        resolver = PathResolver("/var/www", default_document="index.html")

        path = resolver.resolve("/")           # "index.html"
        opened = resolver.open(path)           # OpenFile or None
        if opened is None:
            ...  # 404
        with opened:
            for chunk in opened.chunks(2048):
                ...
    """

    def __init__(
        self,
        root_dir: str = ".",
        default_document: str = "index.html",
        confine_to_root: bool = False,
    ):
        """
        Args:
            root_dir: Directory resolved paths are relative to.
            default_document: File served for the target "/".
            confine_to_root: Refuse paths whose real location is outside
                             root_dir.
        """
        self.root_dir = root_dir
        self.default_document = default_document
        self.confine_to_root = confine_to_root
        self._real_root = os.path.realpath(root_dir)

    def resolve(self, target: str) -> str:
        """
        Map a request target to a path relative to root_dir.

        No I/O, no normalization.

        Examples:
            >>> PathResolver().resolve("/")
            'index.html'
            >>> PathResolver().resolve("/img/a.png")
            'img/a.png'
        """
        if target == "/":
            return self.default_document

        if target.startswith("/"):
            return target[1:]

        return target

    def full_path(self, resolved: str) -> str:
        """Join a resolved path onto root_dir (absolute paths win)."""
        return os.path.join(self.root_dir, resolved)

    def is_inside_root(self, resolved: str) -> bool:
        """Whether the real location of a resolved path is under the real root."""
        real_path = os.path.realpath(self.full_path(resolved))
        try:
            return os.path.commonpath([self._real_root, real_path]) == self._real_root
        except ValueError:
            return False  # Different drives on Windows

    def open(self, resolved: str) -> Optional[OpenFile]:
        """
        Open a resolved path read-only.

        Every failure is reported the same way, as None: missing file,
        permission denied, directory or other non-regular file, invalid
        name, or (with confine_to_root) a path outside the root.

        Returns:
            OpenFile owning the open file, or None.
        """
        if self.confine_to_root and not self.is_inside_root(resolved):
            logger.warning(f"Refusing path outside document root: {resolved!r}")
            return None

        path = self.full_path(resolved)

        try:
            fileobj = open(path, "rb")
        except (OSError, ValueError) as e:
            logger.debug(f"Cannot open {path!r}: {e}")
            return None

        try:
            st = os.fstat(fileobj.fileno())
        except OSError as e:
            logger.debug(f"Cannot stat {path!r}: {e}")
            fileobj.close()
            return None

        if not stat.S_ISREG(st.st_mode):
            logger.debug(f"Not a regular file: {path!r}")
            fileobj.close()
            return None

        return OpenFile(fileobj, st.st_size, path)
