# main.py
"""
Run the API server from the project root:
    python main.py
"""
import logging

import uvicorn

from app.config.settings import settings
from app.main import app

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=8000)
