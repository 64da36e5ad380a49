"""Test utilities for perch routers.

Drive a built ``RouterConfig`` through the ASGI adapter without a
network::

    from perch.testing import TestClient
"""

from perch.testing.client import TestClient

__all__ = ["TestClient"]
