from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api import balances, ens, health, payments
from .config import settings
from .logging_config import setup_logging

setup_logging(settings.log_level)

# Create FastAPI app
app = FastAPI(
    title="PayFlow API",
    description="Cross-chain invoice payments routed through LI.FI",
    version="0.1.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router, tags=["Health"])
app.include_router(payments.router, tags=["Payments"])
app.include_router(balances.router, tags=["Balances"])
app.include_router(ens.router, tags=["ENS"])


@app.get("/")
async def root():
    """Root endpoint with basic info"""
    return {
        "name": "PayFlow API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/healthz"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "payflow.main:app",
        host=settings.host,
        port=settings.port,
        reload=True,
        log_level=settings.log_level.lower()
    )
