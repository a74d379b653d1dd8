import logging

from fastapi import FastAPI
from settlement_engine.config import settings
from settlement_engine.api.v1.routes.settlements import router as settlements_router
from settlement_engine.api.v1.routes.splits import router as splits_router

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="Settlement Engine",
    description="Computes settlement payments and expense splits for shared-expense groups",
    version="1.0.0"
)

app.include_router(settlements_router)
app.include_router(splits_router)

@app.get("/")
def read_root():
    return {"message": "Settlement Engine API", "version": "1.0.0"}

@app.get("/health")
def health_check():
    return {"status": "healthy"}
