"""FastAPI application entry point."""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from modelcodes.core.config import settings
from modelcodes.api import (
    audit_logs,
    batch,
    code_classifications,
    code_usage,
    model_classifications,
    product_types,
    system_config,
)

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Model Code Management", version="1.0.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Classification hierarchy
app.include_router(product_types.router, prefix="/product-types", tags=["product-types"])
app.include_router(model_classifications.router,
                   prefix="/model-classifications", tags=["model-classifications"])
app.include_router(code_classifications.router,
                   prefix="/code-classifications", tags=["code-classifications"])
# Code allocation
app.include_router(code_usage.router, prefix="/code-usage", tags=["code-usage"])
app.include_router(batch.router, prefix="/batch", tags=["batch"])
# Configuration and audit trail
app.include_router(system_config.router, prefix="/system-config", tags=["system-config"])
app.include_router(audit_logs.router, prefix="/audit-logs", tags=["audit-logs"])


@app.get("/")
def root():
    return {"message": "Model Code Management API"}


@app.get("/health")
def health_check():
    return {"status": "healthy"}
