from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Planificación Bimestral"
    DEBUG: bool = False
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # CORS — se puede sobreescribir con env var CORS_ORIGINS como JSON array
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
        "http://localhost:8080",
    ]

    # Servicio externo de presupuesto por área (techo + comprometido)
    BUDGET_SERVICE_URL: str = "http://localhost:8001/api"
    BUDGET_SERVICE_PATH: str = "presupuestos/resumenArea"
    BUDGET_SERVICE_TIMEOUT: float = 10.0  # seconds

    # Moneda por defecto de los techos presupuestales
    MONEDA: str = "COP"

    model_config = {"env_file": ".env", "extra": "ignore"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
