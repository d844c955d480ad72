"""Application ports (interfaces) used by the application layer."""

from .catalog_port import ApiResponse, CatalogPort, ResponseTag, expect_success

__all__ = [
    "ApiResponse",
    "CatalogPort",
    "ResponseTag",
    "expect_success",
]
