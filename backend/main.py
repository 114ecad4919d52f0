"""
SafeStep Safety Backend — FastAPI
Modular entry point. All logic is split across:
  config.py, models.py, errors.py, scoring.py, report_store.py,
  route_service.py, guardian.py, routes.py
"""

import logging

logging.basicConfig(level=logging.INFO)

# Import the FastAPI app from routes (this also seeds the report store)
from routes import app  # noqa: F401

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
