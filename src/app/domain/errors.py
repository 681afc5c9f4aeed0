from __future__ import annotations


class PipelineError(Exception):
    pass


class StorageError(PipelineError):
    pass


class StorageDownloadError(StorageError):
    def __init__(self, object_key: str, reason: str = "Download failed"):
        super().__init__(f"Failed to download {object_key}: {reason}")
        self.object_key = object_key
        self.reason = reason


class StorageUploadError(StorageError):
    def __init__(self, object_key: str, reason: str = "Upload failed"):
        super().__init__(f"Failed to upload {object_key}: {reason}")
        self.object_key = object_key
        self.reason = reason


class MediaTooLargeError(PipelineError):
    def __init__(self, size_bytes: int, max_bytes: int):
        size_mb = size_bytes / (1024 * 1024)
        max_mb = max_bytes / (1024 * 1024)
        super().__init__(f"Video file too large: {size_mb:.2f}MB (max: {max_mb:g}MB)")
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes


class InvalidMediaError(PipelineError):
    def __init__(self, message: str = "Invalid or unsupported media file"):
        super().__init__(message)


class MediaProcessingError(PipelineError):
    def __init__(self, tool: str, reason: str):
        super().__init__(f"{tool} failed: {reason}")
        self.tool = tool
        self.reason = reason


class RepositoryError(PipelineError):
    def __init__(self, operation: str, reason: str):
        super().__init__(f"Repository error during {operation}: {reason}")
        self.operation = operation
        self.reason = reason


class DuplicateRecipeError(RepositoryError):
    def __init__(self, scraped_content_id: int):
        super().__init__("create_recipe", f"recipe already exists for scraped content {scraped_content_id}")
        self.scraped_content_id = scraped_content_id


