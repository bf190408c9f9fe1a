"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales.
Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production).
"""
import json
from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno y proporciona valores por defecto.

    - DATABASE_URL se puede especificar completa o por componentes
    - DRCHRONO_*: cliente del EHR upstream (paginacion, reintentos, token)
    - SYNC_*: politica de corridas (lease, corridas colgadas y presupuesto de tiempo)
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Clinical Sync")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Base de datos - Componentes separados (recomendado para flexibilidad)
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="clinical_user")
    DATABASE_PASSWORD: str = Field(default="clinical_pass")
    DATABASE_NAME: str = Field(default="clinical_db")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # CORS (acepta lista JSON o "*" para todos los origenes)
    CORS_ORIGINS: str = Field(default="*")

    # DrChrono (EHR upstream)
    DRCHRONO_API_BASE: str = Field(default="https://app.drchrono.com/api")
    DRCHRONO_ACCESS_TOKEN: str = Field(default="")
    DRCHRONO_PAGE_SIZE: int = Field(default=100)
    DRCHRONO_MAX_PAGES: int = Field(default=100)
    # Pausa entre paginas para no gatillar el rate limit de DrChrono
    DRCHRONO_PAGE_DELAY_S: float = Field(default=0.2)
    DRCHRONO_TIMEOUT_S: int = Field(default=30)
    DRCHRONO_MAX_RETRIES: int = Field(default=6)

    # Politica de corridas de sync
    SYNC_STALE_RUN_MINUTES: int = Field(default=30)
    SYNC_LEASE_TTL_SECONDS: int = Field(default=900)
    # Segundos por corrida; al agotarse, las entidades restantes se saltean (0 = sin limite)
    SYNC_TIME_BUDGET_S: int = Field(default=0)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")

    @computed_field
    @property
    def effective_database_url(self) -> str:
        """
        Retorna la URL de base de datos efectiva.
        Si DATABASE_URL esta definida, la usa directamente.
        Si no, construye la URL desde los componentes individuales.
        """
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+asyncpg://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )

    @computed_field
    @property
    def is_development(self) -> bool:
        """Indica si el entorno es de desarrollo."""
        return self.ENVIRONMENT.lower() == "development"

    class Config:
        """Configuracion de Pydantic."""
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"  # Ignorar campos extra del .env


def get_cors_origins(cors_string: str) -> List[str]:
    """
    Parsea la configuracion de CORS.
    Acepta "*" para todos los origenes o una lista JSON.
    """
    if cors_string == "*":
        return ["*"]
    try:
        return json.loads(cors_string)
    except json.JSONDecodeError:
        # Si no es JSON valido, retornar como lista simple
        return [origin.strip() for origin in cors_string.split(",")]


# Instancia global de configuracion
settings = Settings()
