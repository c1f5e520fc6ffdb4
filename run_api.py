"""Run FastAPI server."""
import logging
import sys
sys.path.insert(0, ".")

import uvicorn
from src.api.main import app

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    logging.getLogger(__name__).info("Starting FastAPI on http://localhost:8000")
    uvicorn.run(app, host="0.0.0.0", port=8000)
