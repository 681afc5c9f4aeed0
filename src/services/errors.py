class ServiceError(Exception):
    pass


class RateLimitedError(ServiceError):
    pass


class TranscriptionServiceError(ServiceError):
    pass


class ScrapeFailedError(ServiceError):
    def __init__(self, platform: str, message: str):
        super().__init__(f"Failed to scrape {platform_label(platform)} URL: {message}")
        self.platform = platform
        self.reason = message


class NetworkTimeoutError(ServiceError):
    def __init__(self, url: str, timeout_seconds: float):
        super().__init__(f"Network timeout after {timeout_seconds}s: {url}")
        self.url = url
        self.timeout_seconds = timeout_seconds


_PLATFORM_LABELS = {"instagram": "Instagram", "tiktok": "TikTok"}


def platform_label(platform: str) -> str:
    return _PLATFORM_LABELS.get(platform, platform)
