from __future__ import annotations

import base64
import json
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

from contentpath.config import load_settings
from contentpath.server import (
    _build_state,
    get_debug_log_path,
    get_mime_type,
    prune_download_cache_tool,
    read_content,
    register_content_tool,
    resolve_real_path,
    strip_file_protocol_tool,
)


class ServerToolTests(unittest.TestCase):
    def setUp(self) -> None:
        self.tmp = tempfile.TemporaryDirectory()
        self.home = Path(self.tmp.name).resolve()
        with patch.dict("os.environ", {"CONTENTPATH_HOME": str(self.home)}, clear=True):
            self.state = _build_state(load_settings())
        self.ctx = SimpleNamespace(request_context=SimpleNamespace(lifespan_context=self.state))

    def tearDown(self) -> None:
        self.state.conn.close()
        self.tmp.cleanup()

    def test_register_and_read_content(self) -> None:
        blob = self.home / "blob.jpg"
        blob.write_bytes(b"0123456789")
        register_content_tool(
            "content://media/external/images/media/1",
            self.ctx,
            blob_path=str(blob),
            mime_type="image/jpeg",
        )

        payload = json.loads(read_content("content://media/external/images/media/1", self.ctx, max_bytes=4))

        self.assertEqual(base64.b64decode(payload["data_base64"]), b"0123")
        self.assertTrue(payload["truncated"])
        self.assertEqual(payload["mime_type"], "image/jpeg")

    def test_resolve_reports_passthrough(self) -> None:
        payload = json.loads(resolve_real_path("content://unknown.provider/x", self.ctx))

        self.assertEqual(
            payload,
            {"path": "content://unknown.provider/x", "resolved": False, "strategy": "passthrough"},
        )

    def test_get_mime_type_and_strip(self) -> None:
        payload = json.loads(get_mime_type("file:///sdcard/a.jpg", self.ctx))

        self.assertEqual(payload["mime_type"], "image/jpeg")
        self.assertEqual(strip_file_protocol_tool("file:///a/b"), "/a/b")

    def test_prune_download_cache_tool_uses_explicit_budget(self) -> None:
        cache = self.state.settings.paths.cache_dir
        cache.mkdir(parents=True, exist_ok=True)
        (cache / "a.bin").write_bytes(b"a" * 50)

        unbounded = json.loads(prune_download_cache_tool(self.ctx))
        bounded = json.loads(prune_download_cache_tool(self.ctx, max_bytes=10))

        self.assertEqual(unbounded["removed"], [])
        self.assertEqual(bounded["freed_bytes"], 50)
        self.assertFalse((cache / "a.bin").exists())

    def test_get_debug_log_path_reports_existence(self) -> None:
        log_file = self.state.settings.paths.log_file

        missing = json.loads(get_debug_log_path(self.ctx))
        log_file.parent.mkdir(parents=True, exist_ok=True)
        log_file.write_text("started\n", encoding="utf-8")
        present = json.loads(get_debug_log_path(self.ctx))

        self.assertEqual(missing["path"], str(log_file))
        self.assertFalse(missing["exists"])
        self.assertTrue(present["exists"])
        self.assertEqual(present["browser_url"], log_file.as_uri())

    def test_blank_uri_is_rejected(self) -> None:
        with self.assertRaises(ValueError):
            resolve_real_path("  ", self.ctx)


if __name__ == "__main__":
    unittest.main()
