"""
Senhas (bcrypt) e tokens de acesso (JWT).
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import bcrypt
import jwt

from miniaturas.config import Settings

logger = logging.getLogger(__name__)


def gerar_hash_senha(senha: str, rounds: int = 12) -> str:
    return bcrypt.hashpw(senha.encode('utf-8'), bcrypt.gensalt(rounds)).decode('utf-8')


def verificar_senha(senha: str, senha_hash: str) -> bool:
    try:
        return bcrypt.checkpw(senha.encode('utf-8'), senha_hash.encode('utf-8'))
    except ValueError:
        logger.warning("Hash de senha inválido armazenado para o usuário.")
        return False


def criar_token(usuario: dict, settings: Settings) -> str:
    payload = {
        "id": usuario["id"],
        "name": usuario["name"],
        "exp": datetime.now(timezone.utc) + timedelta(hours=settings.jwt_expires_hours),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decodificar_token(token: str, settings: Settings) -> dict:
    """Levanta jwt.PyJWTError se o token for inválido ou estiver expirado."""
    return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])


def extrair_token(authorization: Optional[str]) -> Optional[str]:
    # "Bearer <token>"
    if not authorization:
        return None
    partes = authorization.split(" ")
    return partes[1] if len(partes) > 1 else None


def resposta_autenticacao(usuario: dict, settings: Settings) -> dict:
    return {
        "message": "Você está autenticado",
        "token": criar_token(usuario, settings),
        "userId": usuario["id"],
    }
