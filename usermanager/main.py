"""FastAPI ASGI application entrypoint.

Roles and the administrator account are seeded when the application starts.
"""

import os

from .core.app_factory import create_application

app = create_application()

__all__ = ("app",)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))
