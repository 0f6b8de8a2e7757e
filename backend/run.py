"""Run FastAPI backend server."""

import os

import uvicorn

from contentgen.config import get_settings

if __name__ == "__main__":
    port = int(os.environ.get("PORT", get_settings().port))
    uvicorn.run(
        "backend.main:app",
        host="0.0.0.0",
        port=port,
        reload=os.environ.get("CONTENTGEN_ENV", "development") == "development",
    )
