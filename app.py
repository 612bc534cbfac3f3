"""
Asset Vault – image upload service (FastAPI + SQLite)

Quick start
-----------
1) python -m venv .venv && source .venv/bin/activate  # or .venv\\Scripts\\activate on Windows
2) pip install -e .
3) python app.py  # creates the DB and image directory on startup
4) POST an image to http://localhost:8001/images (fields: file, uploader, title, caption, tags)

Notes
-----
• Settings come from ASSET_VAULT_* environment variables (see config.py).
• Images are stored as <sha256>.webp and <sha256>_thumb.webp in the image directory.
• Uploading the same bytes twice is rejected as a duplicate.
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from config import VaultConfig
from database import init_db, make_engine
from routes import router
from vault import AssetVault

logger = logging.getLogger("uvicorn.error")


def create_app(config: Optional[VaultConfig] = None) -> FastAPI:
    """Build the application around one vault configuration."""
    config = config or VaultConfig()
    vault = AssetVault(config, make_engine(config.database_url))

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        init_db(vault.engine)
        config.image_dir.mkdir(parents=True, exist_ok=True)
        vault.sweep()
        logger.info("asset vault serving images from %s", config.image_dir)
        yield
        vault.engine.dispose()

    app = FastAPI(title="Asset Vault", lifespan=lifespan)
    app.state.vault = vault
    app.include_router(router, prefix=config.api_prefix)
    return app


app = create_app()


if __name__ == "__main__":
    # Allow `python app.py 8000`
    port = int(sys.argv[1]) if len(sys.argv) > 1 else 8001
    print(f"→ Open http://localhost:{port}/docs")
    import uvicorn

    uvicorn.run("app:app", host="127.0.0.1", port=port, reload=True)
