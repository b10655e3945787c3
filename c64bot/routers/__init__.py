"""HTTP routers package."""

from .files_router import FileListResponse, StoredFileResponse, create_files_router

__all__ = [
    "create_files_router",
    "FileListResponse",
    "StoredFileResponse",
]
