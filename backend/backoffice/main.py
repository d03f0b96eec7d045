import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from backoffice.api import customers, invoices, stock, users
from backoffice.core.config import settings
from backoffice.services.errors import WorkflowError

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Back office: stock, customers and invoices kept consistent",
    version="0.1.0",
)

# CORS - restrict in production via env
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(WorkflowError)
async def workflow_error_handler(request: Request, exc: WorkflowError):
    if exc.status_code >= 500:
        logger.error("%s %s -> %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# Routers
app.include_router(stock.router)
app.include_router(customers.router)
app.include_router(invoices.router)
app.include_router(users.router)


@app.get("/health")
async def health_check():
    return {"status": "ok", "version": "0.1.0"}
