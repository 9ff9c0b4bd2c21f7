from .sync import router as sync_router

_routers = [sync_router]

__all__ = ["get_routers"]


def get_routers():
    return _routers
