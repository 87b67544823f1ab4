import logging

import jwt
from fastapi import Depends, HTTPException, Request

from miniaturas.armazenamento import Banco, id_valido
from miniaturas.config import Settings
from miniaturas.seguranca import decodificar_token, extrair_token

logger = logging.getLogger(__name__)


def get_banco(request: Request) -> Banco:
    return request.app.state.banco


def get_config(request: Request) -> Settings:
    return request.app.state.settings


def usuario_atual(
    request: Request,
    banco: Banco = Depends(get_banco),
    settings: Settings = Depends(get_config),
) -> dict:
    authorization = request.headers.get("Authorization")
    if not authorization:
        raise HTTPException(status_code=401, detail="Acesso negado!")

    token = extrair_token(authorization)
    try:
        payload = decodificar_token(token or "", settings)
    except jwt.PyJWTError as e:
        logger.info(f"Token rejeitado: {e}")
        raise HTTPException(status_code=401, detail="Token inválido!")

    usuario = banco.usuarios.buscar(payload.get("id"))
    if usuario is None:
        raise HTTPException(status_code=401, detail="Token inválido!")
    return usuario


def admin_atual(usuario: dict = Depends(usuario_atual)) -> dict:
    if not usuario.get("admin"):
        raise HTTPException(status_code=401, detail="Acesso negado")
    return usuario


def validar_id(id: str):
    if not id_valido(id):
        raise HTTPException(status_code=422, detail="ID inválido")


def get_publicador(request: Request):
    return request.app.state.publicador
