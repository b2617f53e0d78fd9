from .routes import router as routes_router

__all__ = ["routes_router"]
