"""
FastAPI dependency injection.

Dependencies provide the relay's shared services to route handlers. The
store, tracker and range server are process-wide state, created once by
``create_app`` and hung off ``app.state``; the functions here hand them to
routes. Using dependency injection means:
- Routes don't instantiate or import their own state (easier to test)
- A test can build an app with its own settings and get fresh state
- Overrides via ``app.dependency_overrides`` work as usual
"""

from typing import Annotated

from fastapi import Depends, Request

from ..config.settings import Settings
from ..core.relay.ranges import RangeServer
from ..core.relay.tracker import TransferTracker
from ..infrastructure.storage.client import InMemoryObjectStore


def get_app_settings(request: Request) -> Settings:
    """Settings the running app was created with."""
    return request.app.state.settings


def get_object_store(request: Request) -> InMemoryObjectStore:
    return request.app.state.object_store


def get_transfer_tracker(request: Request) -> TransferTracker:
    return request.app.state.transfer_tracker


def get_range_server(request: Request) -> RangeServer:
    return request.app.state.range_server


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
ObjectStoreDep = Annotated[InMemoryObjectStore, Depends(get_object_store)]
TransferTrackerDep = Annotated[TransferTracker, Depends(get_transfer_tracker)]
RangeServerDep = Annotated[RangeServer, Depends(get_range_server)]
