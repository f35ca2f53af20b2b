from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from contentpath.resolver import UriResolver
from tests.fixtures.fake_host import FakeContentResolver, make_host


class OpenByteStreamTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.root = Path(self.tmp.name)
        self.content = FakeContentResolver()
        self.resolver = UriResolver(make_host(self.root, self.content))

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_content_identifier_reads_through_provider(self) -> None:
        self.content.blobs["content://media/external/images/media/4"] = b"jpeg-bytes"

        with self.resolver.open_byte_stream("content://media/external/images/media/4") as stream:
            self.assertEqual(stream.read(), b"jpeg-bytes")

    def test_missing_content_raises_io_error(self) -> None:
        with self.assertRaises(OSError):
            self.resolver.open_byte_stream("content://media/external/images/media/404")

    def test_provider_errors_surface_as_io_error(self) -> None:
        def _boom(uri):
            raise RuntimeError("provider unavailable")

        self.content.open_input_stream = _boom  # type: ignore[method-assign]

        with self.assertRaises(OSError):
            self.resolver.open_byte_stream("content://media/external/images/media/4")

    def test_asset_identifier_reads_bundle_and_ignores_query(self) -> None:
        asset = self.root / "assets" / "www" / "img" / "logo.png"
        asset.parent.mkdir(parents=True)
        asset.write_bytes(b"png")

        with self.resolver.open_byte_stream("file:///android_asset/www/img/logo.png?v=3") as stream:
            self.assertEqual(stream.read(), b"png")
        self.assertEqual(self.content.opened, [])

    def test_missing_asset_raises(self) -> None:
        with self.assertRaises(FileNotFoundError):
            self.resolver.open_byte_stream("file:///android_asset/www/missing.png")

    def test_asset_path_cannot_escape_bundle(self) -> None:
        (self.root / "secret.txt").write_text("s")

        with self.assertRaises(FileNotFoundError):
            self.resolver.open_byte_stream("file:///android_asset/../secret.txt")

    def test_asset_without_store_raises(self) -> None:
        resolver = UriResolver(make_host(self.root, self.content, with_assets=False))

        with self.assertRaises(FileNotFoundError):
            resolver.open_byte_stream("file:///android_asset/www/index.html")

    def test_file_identifier_tries_provider_first(self) -> None:
        raw = "file:///provided/by/content.bin"
        self.content.blobs[raw] = b"from-provider"

        with self.resolver.open_byte_stream(raw) as stream:
            self.assertEqual(stream.read(), b"from-provider")

    def test_file_identifier_falls_back_to_local_file(self) -> None:
        local = self.root / "photo.jpg"
        local.write_bytes(b"local")

        with self.resolver.open_byte_stream(local.as_uri() + "?token=1") as stream:
            self.assertEqual(stream.read(), b"local")
        self.assertEqual(self.content.opened, [local.as_uri()])

    def test_bare_path_falls_back_to_local_file(self) -> None:
        local = self.root / "clip.mp4"
        local.write_bytes(b"clip")

        with self.resolver.open_byte_stream(str(local)) as stream:
            self.assertEqual(stream.read(), b"clip")

    def test_unopenable_path_raises(self) -> None:
        with self.assertRaises(OSError):
            self.resolver.open_byte_stream(str(self.root / "nope.bin"))


class MimeTypeTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.content = FakeContentResolver()
        self.resolver = UriResolver(make_host(Path(self.tmp.name), self.content))

    def tearDown(self) -> None:
        self.tmp.cleanup()

    def test_content_identifier_uses_declared_type(self) -> None:
        raw = "content://media/external/audio/media/7"
        self.content.types[raw] = "audio/mpeg"

        self.assertEqual(self.resolver.mime_type(raw), "audio/mpeg")

    def test_declared_type_is_canonicalized(self) -> None:
        raw = "content://media/external/images/media/9"
        self.content.types[raw] = " Image/JPEG; charset=binary"

        self.assertEqual(self.resolver.mime_type(raw), "image/jpeg")

    def test_content_identifier_without_declared_type(self) -> None:
        self.assertIsNone(self.resolver.mime_type("content://media/external/audio/media/8.jpg"))

    def test_file_and_bare_paths_use_extension(self) -> None:
        self.assertEqual(self.resolver.mime_type("file:///sdcard/rec.3ga"), "audio/3gpp")
        self.assertEqual(self.resolver.mime_type("file:///sdcard/DCIM/A.JPG"), "image/jpeg")
        self.assertEqual(self.resolver.mime_type("/sdcard/DCIM/a.jpg"), "image/jpeg")
        self.assertEqual(self.resolver.mime_type("/sdcard/DCIM/a.jpg?x=1"), "image/jpeg")


if __name__ == "__main__":
    unittest.main()
