import logging

from fastapi import APIRouter, Depends, HTTPException

from miniaturas.armazenamento import Banco, novo_id
from miniaturas.dependencias import get_banco, usuario_atual
from miniaturas.models import Endereco

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["enderecos"])

CAMPOS_OBRIGATORIOS = [
    ("street", "A rua é obrigatória"),
    ("number", "O número é obrigatório"),
    ("neighborhood", "O bairro é obrigatório"),
    ("city", "A cidade é obrigatória"),
    ("state", "O estado é obrigatório"),
    ("zip_code", "O CEP é obrigatório"),
]


def _novo_endereco(usuario: dict, dados: Endereco) -> dict:
    for campo, mensagem in CAMPOS_OBRIGATORIOS:
        if not getattr(dados, campo):
            raise HTTPException(status_code=422, detail=mensagem)

    endereco = {
        "id": novo_id(),
        "street": dados.street,
        "number": dados.number,
        "complement": dados.complement,
        "neighborhood": dados.neighborhood,
        "city": dados.city,
        "state": dados.state,
        "zip_code": dados.zip_code,
        "is_default": bool(dados.is_default),
    }

    enderecos = usuario.setdefault("addresses", [])
    if endereco["is_default"]:
        for existente in enderecos:
            existente["is_default"] = False
    # O primeiro endereço é sempre o padrão
    if not enderecos:
        endereco["is_default"] = True

    enderecos.append(endereco)
    return endereco


def _aplicar_alteracoes(usuario: dict, endereco: dict, dados: Endereco):
    for campo in ("street", "number", "neighborhood", "city", "state", "zip_code"):
        valor = getattr(dados, campo)
        if valor:
            endereco[campo] = valor
    if "complement" in dados.model_fields_set:
        endereco["complement"] = dados.complement

    if dados.is_default:
        for existente in usuario["addresses"]:
            existente["is_default"] = False
        endereco["is_default"] = True


def _localizar(usuario: dict, address_id: str) -> dict:
    endereco = next((e for e in usuario.get("addresses", []) if e["id"] == address_id), None)
    if endereco is None:
        raise HTTPException(status_code=404, detail="Endereço não encontrado")
    return endereco


@router.get("/addresses")
async def listar_enderecos(usuario: dict = Depends(usuario_atual)):
    return {"addresses": usuario.get("addresses", [])}


@router.post("/addresses", status_code=201)
async def adicionar_endereco(
    dados: Endereco,
    banco: Banco = Depends(get_banco),
    usuario: dict = Depends(usuario_atual),
):
    endereco = _novo_endereco(usuario, dados)
    banco.usuarios.atualizar(usuario)
    return {"message": "Endereço adicionado com sucesso", "address": endereco}


@router.patch("/address")
async def atualizar_endereco_padrao(
    dados: Endereco,
    banco: Banco = Depends(get_banco),
    usuario: dict = Depends(usuario_atual),
):
    padrao = next((e for e in usuario.get("addresses", []) if e.get("is_default")), None)
    if padrao is None:
        endereco = _novo_endereco(usuario, dados)
    else:
        _aplicar_alteracoes(usuario, padrao, dados)
        endereco = padrao
    banco.usuarios.atualizar(usuario)
    return {"message": "Endereço atualizado com sucesso", "address": endereco}


@router.patch("/addresses/{address_id}")
async def atualizar_endereco(
    address_id: str,
    dados: Endereco,
    banco: Banco = Depends(get_banco),
    usuario: dict = Depends(usuario_atual),
):
    endereco = _localizar(usuario, address_id)
    _aplicar_alteracoes(usuario, endereco, dados)
    banco.usuarios.atualizar(usuario)
    return {"message": "Endereço atualizado com sucesso", "address": endereco}


@router.delete("/addresses/{address_id}")
async def remover_endereco(
    address_id: str,
    banco: Banco = Depends(get_banco),
    usuario: dict = Depends(usuario_atual),
):
    endereco = _localizar(usuario, address_id)
    usuario["addresses"].remove(endereco)

    if endereco.get("is_default") and usuario["addresses"]:
        usuario["addresses"][0]["is_default"] = True

    banco.usuarios.atualizar(usuario)
    return {"message": "Endereço removido com sucesso"}
