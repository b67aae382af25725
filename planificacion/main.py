import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from planificacion.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: configure root logging from settings
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info(
        "Starting %s (budget service: %s/%s)",
        settings.APP_NAME,
        settings.BUDGET_SERVICE_URL,
        settings.BUDGET_SERVICE_PATH,
    )
    yield


app = FastAPI(
    title=settings.APP_NAME,
    version="1.0.0",
    debug=settings.DEBUG,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get(f"{settings.API_PREFIX}/health")
def health_check():
    return {"status": "ok", "app": settings.APP_NAME}


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------

# Quantity parsing
from planificacion.routers import cantidades  # noqa: E402

app.include_router(
    cantidades.router,
    prefix=f"{settings.API_PREFIX}/cantidades",
    tags=["Cantidades"],
)

# Activity drafts: bimester summary and save gate
from planificacion.routers import actividades  # noqa: E402

app.include_router(
    actividades.router,
    prefix=f"{settings.API_PREFIX}/actividades",
    tags=["Actividades"],
)

# Area budget ceilings
from planificacion.routers import presupuesto_area  # noqa: E402

app.include_router(
    presupuesto_area.router,
    prefix=f"{settings.API_PREFIX}/presupuesto-area",
    tags=["Presupuesto por área"],
)

# Import module
from planificacion.routers import importacion  # noqa: E402

app.include_router(
    importacion.router,
    prefix=f"{settings.API_PREFIX}/importacion",
    tags=["Importación"],
)
