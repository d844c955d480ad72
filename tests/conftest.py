# tests/conftest.py
"""
Pytest configuration and fixtures.
Adds src to sys.path so `import fatcat_cli` works without installing.
"""

import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
src_root = project_root / "src"
if str(src_root) not in sys.path:
    sys.path.insert(0, str(src_root))

from fatcat_cli.application.ports.catalog_port import ApiResponse, ResponseTag  # noqa: E402

_STATUS_FOR_TAG = {
    ResponseTag.SUCCESS: 200,
    ResponseTag.BAD_REQUEST: 400,
    ResponseTag.NOT_AUTHORIZED: 401,
    ResponseTag.FORBIDDEN: 403,
    ResponseTag.NOT_FOUND: 404,
    ResponseTag.CONFLICT: 409,
    ResponseTag.GENERIC_ERROR: 500,
}


class FakeCatalogApi:
    """Stands in for CatalogApiClient; answers every method from queued responses.

    A queue with several entries is consumed in order; its last entry is
    repeated. Queued exceptions are raised instead of returned.
    """

    def __init__(self, editor_id=None, has_api_token=False):
        self.api_host = "https://api.test"
        self.editor_id = editor_id
        self.has_api_token = has_api_token
        self.responses = {}
        self.calls = []

    def respond(self, method, body=None, tag=ResponseTag.SUCCESS):
        self.responses.setdefault(method, []).append(
            ApiResponse(tag=tag, body=body, status=_STATUS_FOR_TAG[tag])
        )

    def fail(self, method, exc):
        self.responses.setdefault(method, []).append(exc)

    def called(self, method):
        return [(args, kwargs) for name, args, kwargs in self.calls if name == method]

    def __getattr__(self, name):
        if name.startswith("_"):
            raise AttributeError(name)

        def _call(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            queue = self.responses.get(name)
            if not queue:
                raise AssertionError(f"unexpected API call: {name}")
            item = queue.pop(0) if len(queue) > 1 else queue[0]
            if isinstance(item, Exception):
                raise item
            return item

        return _call


@pytest.fixture
def fake_api():
    return FakeCatalogApi()
