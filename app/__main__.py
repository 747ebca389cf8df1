"""Run the API with uvicorn: ``python -m app`` or ``drive-mirror``."""

import os

import uvicorn

from app.main import app

DEFAULT_PORT = 5000


def main() -> None:
    host = os.environ.get("HOST", "0.0.0.0")
    port = int(os.environ.get("PORT", DEFAULT_PORT))
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    main()
