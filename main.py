"""Run the document import API with Uvicorn."""

from docimport.core.settings import get_settings
from docimport.main import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run("docimport.main:app", host=settings.server_host, port=settings.server_port, reload=True)
