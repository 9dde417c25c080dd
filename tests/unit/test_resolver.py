"""
Unit tests for path resolution and file opening.
"""

import os
from pathlib import Path

import pytest

from fileserver.http.resolver import PathResolver, OpenFile


class TestResolve:
    """resolve() is pure string mapping."""

    def test_root_maps_to_default_document(self):
        assert PathResolver().resolve("/") == "index.html"

    def test_custom_default_document(self):
        assert PathResolver(default_document="home.htm").resolve("/") == "home.htm"

    def test_leading_slash_stripped(self):
        assert PathResolver().resolve("/css/site.css") == "css/site.css"

    def test_only_one_slash_stripped(self):
        assert PathResolver().resolve("//etc/passwd") == "/etc/passwd"

    def test_no_normalization(self):
        assert PathResolver().resolve("/../secret.txt") == "../secret.txt"
        assert PathResolver().resolve("/a/./b") == "a/./b"

    def test_query_not_stripped(self):
        assert PathResolver().resolve("/index.html?v=2") == "index.html?v=2"

    def test_target_without_slash_kept(self):
        assert PathResolver().resolve("index.html") == "index.html"

    def test_empty_target(self):
        assert PathResolver().resolve("") == ""


class TestOpen:

    def test_open_regular_file(self, docroot: Path):
        resolver = PathResolver(str(docroot))

        opened = resolver.open("index.html")

        assert isinstance(opened, OpenFile)
        with opened:
            assert opened.size == 10
            assert b"".join(opened.chunks(4)) == b"<p>hi!</p>"
        assert opened.fileobj.closed

    def test_chunks_respect_size(self, docroot: Path):
        resolver = PathResolver(str(docroot))

        with resolver.open("big.bin") as opened:
            chunks = list(opened.chunks(2048))

        assert [len(c) for c in chunks] == [2048, 2048, 2048, 2048, 1808]

    def test_chunks_stop_at_fstat_size(self, docroot: Path):
        """Bytes appended after opening are not sent."""
        resolver = PathResolver(str(docroot))

        with resolver.open("notes.txt") as opened:
            with open(docroot / "notes.txt", "ab") as f:
                f.write(b"appended later\n")
            assert b"".join(opened.chunks(1024)) == b"plain notes\n"

    def test_missing_file(self, docroot: Path):
        assert PathResolver(str(docroot)).open("nope.html") is None

    def test_directory_is_not_found(self, docroot: Path):
        resolver = PathResolver(str(docroot))

        assert resolver.open("sub") is None
        assert resolver.open("") is None

    def test_invalid_name_is_not_found(self, docroot: Path):
        assert PathResolver(str(docroot)).open("bad\x00name") is None

    @pytest.mark.skipif(
        not hasattr(os, "geteuid") or os.geteuid() == 0,
        reason="root ignores file permissions",
    )
    def test_unreadable_file_is_not_found(self, docroot: Path):
        target = docroot / "locked.html"
        target.write_bytes(b"x")
        target.chmod(0)
        try:
            assert PathResolver(str(docroot)).open("locked.html") is None
        finally:
            target.chmod(0o644)


class TestTraversal:

    def test_traversal_is_opened_by_default(self, docroot: Path):
        """Unconfined resolution reads outside the root, as it always has."""
        resolver = PathResolver(str(docroot))

        opened = resolver.open(resolver.resolve("/../secret.txt"))

        assert opened is not None
        with opened:
            assert b"".join(opened.chunks(64)).startswith(b"top secret")

    def test_traversal_refused_when_confined(self, docroot: Path):
        resolver = PathResolver(str(docroot), confine_to_root=True)

        assert resolver.open(resolver.resolve("/../secret.txt")) is None
        assert resolver.open(resolver.resolve("//etc/passwd")) is None

    def test_confined_still_serves_inside(self, docroot: Path):
        resolver = PathResolver(str(docroot), confine_to_root=True)

        opened = resolver.open(resolver.resolve("/sub/../index.html"))
        assert opened is not None
        opened.close()

    @pytest.mark.skipif(not hasattr(os, "symlink"), reason="needs symlinks")
    def test_confined_symlink_escape_refused(self, docroot: Path):
        (docroot / "link.txt").symlink_to(docroot.parent / "secret.txt")

        assert PathResolver(str(docroot), confine_to_root=True).open("link.txt") is None
