"""
Configuracion central del worker.
Gestiona variables de entorno y configuraciones globales.
Soporta configuracion dinamica para desarrollo (ENVIRONMENT=development)
y produccion (ENVIRONMENT=production).
"""
from pydantic_settings import BaseSettings
from pydantic import Field, computed_field


class Settings(BaseSettings):
    """
    Clase de configuracion del worker.
    Lee variables de entorno y proporciona valores por defecto.

    Grupos:
    - APP / servidor: API minima para disparar y consultar jobs
    - DATABASE_*: store de cuentas y checkpoints
    - CRM_*: API remoto y credenciales OAuth de la app
    - SYNC_*: paginacion y politica de reintentos
    - QUEUE_* / SINK_*: buffer de acciones y entrega al sink
    """

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="CRM Sync Worker")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Base de datos - Componentes separados
    DATABASE_HOST: str = Field(default="localhost")
    DATABASE_PORT: int = Field(default=5432)
    DATABASE_USER: str = Field(default="crm_sync")
    DATABASE_PASSWORD: str = Field(default="crm_sync")
    DATABASE_NAME: str = Field(default="crm_sync")

    # Base de datos - URL completa (override de componentes si se proporciona)
    DATABASE_URL: str = Field(default="")
    DB_POOL_SIZE: int = Field(default=5)
    DB_MAX_OVERFLOW: int = Field(default=10)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/crm_sync.log")

    # CRM remoto
    CRM_API_BASE_URL: str = Field(default="https://api.hubapi.com")
    CRM_CLIENT_ID: str = Field(default="")
    CRM_CLIENT_SECRET: str = Field(default="")
    CRM_HTTP_TIMEOUT: float = Field(default=30.0)

    # Paginacion y reintentos
    SYNC_PAGE_SIZE: int = Field(default=100)
    SYNC_MAX_ATTEMPTS: int = Field(default=5)
    SYNC_BACKOFF_BASE_SECONDS: float = Field(default=5.0)
    SYNC_RATE_LIMIT_DEFAULT_WAIT: float = Field(default=5.0)
    # Tope propio para esperas por 429: no consumen intentos pero tampoco son infinitas
    SYNC_MAX_RATE_LIMIT_WAITS: int = Field(default=50)
    SYNC_OFFSET_CEILING: int = Field(default=9900)

    # Buffer de acciones y sink
    QUEUE_FLUSH_THRESHOLD: int = Field(default=2000)
    SINK_URL: str = Field(default="")
    SINK_API_KEY: str = Field(default="")
    SINK_HTTP_TIMEOUT: float = Field(default=30.0)

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


# Instancia global de configuracion
settings = Settings()
