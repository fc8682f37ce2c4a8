import logging
import os
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles
from fastapi.responses import RedirectResponse
from dotenv import load_dotenv

load_dotenv()

from app.routes import commissions_router
from app.database import SessionLocal, init_db, DATABASE_URL
from app.services.adjustment_state import AdjustmentStateManager, SqlAdjustmentStore

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="Dealer Commissions",
    description="Weekly commission reports for the dealership back office",
    version="1.0.0"
)

# Mount static files
os.makedirs("app/static", exist_ok=True)
app.mount("/static", StaticFiles(directory="app/static"), name="static")

# Include routers
app.include_router(commissions_router)

# Adjustments are shared across requests; each request carries its own week selection
app.state.adjustments = AdjustmentStateManager(SqlAdjustmentStore(SessionLocal))


@app.on_event("startup")
def on_startup():
    """Ensure DB is reachable and initialized at startup. Will create tables
    automatically when using the default SQLite dev DB. If initialization
    fails the app will raise and stop with a clear error message.
    """
    try:
        init_db()
    except Exception as e:
        # Re-raise as RuntimeError so the server fails loudly
        raise RuntimeError(
            f"Database initialization failed for DATABASE_URL={DATABASE_URL}: {e}"
        ) from e
    logger.info("Commission service started")


@app.get("/", include_in_schema=False)
async def index():
    return RedirectResponse(url="/commissions", status_code=303)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
