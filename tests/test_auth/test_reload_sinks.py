"""Tests for the reload sinks (in-process auth source and HTTP notifier)."""

from __future__ import annotations

import logging
from pathlib import Path
from unittest.mock import MagicMock, patch

import httpx
import pytest

from authcapture.auth import AuthSource, HttpReloadSink, create_reload_sink
from authcapture.auth.credential_store import CredentialStore
from authcapture.exceptions import CredentialNotFoundError, ReloadError
from authcapture.models import CaptureConfig


def _mock_response(status_code: int = 200) -> MagicMock:
    response = MagicMock(spec=httpx.Response)
    response.status_code = status_code
    response.text = "boom" if status_code >= 400 else "ok"
    if status_code >= 400:
        response.raise_for_status.side_effect = httpx.HTTPStatusError(
            message=f"HTTP {status_code}",
            request=MagicMock(),
            response=response,
        )
    else:
        response.raise_for_status.return_value = None
    return response


class TestAuthSource:
    def test_empty_store(self, store: CredentialStore) -> None:
        source = AuthSource(store)
        assert source.reload_auth_sources() == []
        assert source.available_indices == []

    def test_reload_picks_up_new_files(self, store: CredentialStore, write_auth) -> None:
        source = AuthSource(store)
        write_auth("auth-0.json")
        assert source.reload_auth_sources() == [0]

        write_auth("auth-3.json")
        source.reload()
        assert source.available_indices == [0, 3]

    def test_corrupt_file_skipped(
        self,
        store: CredentialStore,
        write_auth,
        auth_dir: Path,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        write_auth("auth-1.json")
        (auth_dir / "auth-2.json").write_text("{broken", encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="authcapture"):
            indices = AuthSource(store).reload_auth_sources()

        assert indices == [1]
        assert "auth-2.json" in caplog.text

    def test_get(self, store: CredentialStore, write_auth) -> None:
        write_auth("auth-5.json", {"cookies": [{"name": "sid"}], "origins": []})
        source = AuthSource(store)
        source.reload()

        assert source.get(5).cookies == [{"name": "sid"}]
        with pytest.raises(CredentialNotFoundError):
            source.get(6)

    def test_zero_padded_name(self, store: CredentialStore, write_auth) -> None:
        write_auth("auth-007.json", {"cookies": [{"name": "padded"}], "origins": []})
        source = AuthSource(store)
        assert source.reload_auth_sources() == [7]
        assert source.get(7).cookies == [{"name": "padded"}]

    def test_duplicate_index_matches_discovery(self, store: CredentialStore, write_auth) -> None:
        write_auth("auth-007.json", {"cookies": [{"name": "padded"}], "origins": []})
        write_auth("auth-7.json", {"cookies": [{"name": "plain"}], "origins": []})
        source = AuthSource(store)

        assert source.reload_auth_sources() == [7]
        latest = store.find_latest()
        assert latest is not None
        assert source.get(7) == store.load_file(latest.file)

    def test_get_requires_reload(self, store: CredentialStore, write_auth) -> None:
        source = AuthSource(store)
        write_auth("auth-0.json")
        with pytest.raises(CredentialNotFoundError):
            source.get(0)


class TestHttpReloadSink:
    def test_posts_to_url(self) -> None:
        sink = HttpReloadSink("http://127.0.0.1:7860/api/auth/reload", headers={"X-Key": "k"})
        with patch("authcapture.auth.remote.httpx.post", return_value=_mock_response()) as post:
            sink.reload()

        post.assert_called_once()
        args, kwargs = post.call_args
        assert args[0] == "http://127.0.0.1:7860/api/auth/reload"
        assert kwargs["headers"]["X-Key"] == "k"

    def test_http_status_error(self) -> None:
        sink = HttpReloadSink("http://127.0.0.1:7860/reload")
        with patch("authcapture.auth.remote.httpx.post", return_value=_mock_response(500)):
            with pytest.raises(ReloadError, match="500"):
                sink.reload()

    def test_connection_error(self) -> None:
        sink = HttpReloadSink("http://127.0.0.1:1/reload")
        with patch(
            "authcapture.auth.remote.httpx.post",
            side_effect=httpx.ConnectError("refused"),
        ):
            with pytest.raises(ReloadError, match="refused"):
                sink.reload()


class TestCreateReloadSink:
    def test_local_by_default(self, store: CredentialStore) -> None:
        sink = create_reload_sink(CaptureConfig(auth_dir=store.directory), store)
        assert isinstance(sink, AuthSource)

    def test_http_when_url_configured(self, store: CredentialStore) -> None:
        config = CaptureConfig(auth_dir=store.directory, reload_url="http://localhost/reload")
        sink = create_reload_sink(config, store)
        assert isinstance(sink, HttpReloadSink)
        assert sink.url == "http://localhost/reload"
