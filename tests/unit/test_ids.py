from __future__ import annotations

import pytest

from src.services.ids import classify, extract_post_id, is_instagram_url, is_tiktok_url


class TestClassify:
    @pytest.mark.parametrize(
        "url",
        [
            "https://www.instagram.com/p/ABC123/",
            "https://instagram.com/p/ABC123",
            "https://www.instagram.com/reel/C1d-E_f2/",
            "http://instagram.com/reel/xyz",
        ],
    )
    def test_instagram_urls(self, url: str) -> None:
        assert classify(url) == "instagram"

    @pytest.mark.parametrize(
        "url",
        [
            "https://www.tiktok.com/@chef.ana/video/7312345678901234567",
            "https://tiktok.com/@cook_123/video/1/",
        ],
    )
    def test_tiktok_urls(self, url: str) -> None:
        assert classify(url) == "tiktok"

    @pytest.mark.parametrize(
        "url",
        [
            "https://invalid.com/post/123",
            "https://www.instagram.com/chef.ana/",
            "https://www.instagram.com/p/",
            "https://www.instagram.com/p/ABC/extra",
            "https://www.tiktok.com/@chef/photo/123",
            "https://www.tiktok.com/@chef/video/abc",
            "https://vm.tiktok.com/ZM123/",
            "https://notinstagram.com/p/ABC",
            "ftp://instagram.com/p/ABC",
            "not a url",
            "",
        ],
    )
    def test_rejects_everything_else(self, url: str) -> None:
        assert classify(url) is None

    def test_malformed_url_does_not_raise(self) -> None:
        assert classify("http://[::1") is None
        assert is_instagram_url("http://[::1") is False
        assert is_tiktok_url("http://[::1") is False


class TestExtractPostId:
    def test_instagram_post(self) -> None:
        assert extract_post_id("https://www.instagram.com/p/CACHED/") == "CACHED"

    def test_instagram_reel(self) -> None:
        assert extract_post_id("https://instagram.com/reel/C1d-E_f2") == "C1d-E_f2"

    def test_tiktok_video(self) -> None:
        url = "https://www.tiktok.com/@chef.ana/video/7312345678901234567?lang=en"
        assert extract_post_id(url) == "7312345678901234567"

    def test_unknown_shape(self) -> None:
        assert extract_post_id("https://www.instagram.com/chef.ana/") is None
        assert extract_post_id("garbage") is None
