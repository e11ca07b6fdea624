from .routes import account_router

__all__ = [
    "account_router",
]
