import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

TOPIC_PEDIDOS_CRIADOS = 'pedidos.criados'
TOPIC_PEDIDOS_ATUALIZADOS = 'pedidos.atualizados'
TOPIC_PEDIDOS_ENVIADOS = 'pedidos.enviados'
TOPIC_PAGAMENTOS_APROVADOS = 'pagamentos.aprovados'
TOPIC_PAGAMENTOS_RECUSADOS = 'pagamentos.recusados'


class Settings(BaseSettings):
    """Configuração lida de variáveis de ambiente (prefixo MINIATURAS_) ou do .env."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="MINIATURAS_",
        case_sensitive=False,
        extra="ignore",
    )

    app_name: str = "Miniaturas Ferrari API"
    host: str = "0.0.0.0"
    port: int = 5000
    data_dir: Path = Path("data")
    images_dir: Path = Path("public/images")

    jwt_secret: str = "supersecreto"
    jwt_algorithm: str = "HS256"
    jwt_expires_hours: int = 168
    bcrypt_rounds: int = 12

    # lista separada por vírgulas
    cors_origins: str = "*"
    log_level: str = "INFO"

    rabbitmq_host: Optional[str] = None
    rabbitmq_user: str = "admin"
    rabbitmq_password: str = "admin"
    rabbitmq_exchange: str = "default"

    admin_email: Optional[str] = None
    admin_password: Optional[str] = None
    admin_name: str = "Administrador"

    @property
    def origens_cors(self) -> List[str]:
        return [origem.strip() for origem in self.cors_origins.split(",") if origem.strip()]

    @property
    def eventos_habilitados(self) -> bool:
        return bool(self.rabbitmq_host)


@lru_cache
def get_settings() -> Settings:
    return Settings()


def configurar_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    )
