"""Entrypoint: run the session orchestrator server."""

import uvicorn

from rag_orchestrator.api.app import create_app
from rag_orchestrator.config.settings import Settings


def main() -> None:
    settings = Settings()
    app = create_app()
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    main()
