import logging

from fastapi import APIRouter, Depends, HTTPException

from miniaturas.armazenamento import Banco, novo_id
from miniaturas.dependencias import get_banco, usuario_atual
from miniaturas.models import TIPOS_PAGAMENTO, MetodoPagamento

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["metodos de pagamento"])

TIPOS_CARTAO = ('credit', 'debit')
CAMPOS_CARTAO = ("card_number", "card_holder_name", "expiration_date", "cvv")


def mascarar_metodo(metodo: dict) -> dict:
    """Número do cartão reduzido aos 4 últimos dígitos; cvv nunca sai da API."""
    publico = {chave: valor for chave, valor in metodo.items() if chave != "cvv"}
    numero = metodo.get("card_number")
    if numero:
        publico["card_number"] = "**** **** **** " + numero[-4:]
    return publico


def _localizar(usuario: dict, payment_id: str) -> dict:
    metodo = next((m for m in usuario.get("payment_methods", []) if m["id"] == payment_id), None)
    if metodo is None:
        raise HTTPException(status_code=404, detail="Método de pagamento não encontrado")
    return metodo


@router.get("/payment-methods")
async def listar_metodos(usuario: dict = Depends(usuario_atual)):
    return {"paymentMethods": [mascarar_metodo(m) for m in usuario.get("payment_methods", [])]}


@router.post("/payment-methods", status_code=201)
async def adicionar_metodo(
    dados: MetodoPagamento,
    banco: Banco = Depends(get_banco),
    usuario: dict = Depends(usuario_atual),
):
    if not dados.type:
        raise HTTPException(status_code=422, detail="O tipo de pagamento é obrigatório")
    if dados.type not in TIPOS_PAGAMENTO:
        raise HTTPException(status_code=422, detail="Tipo de pagamento inválido")

    cartao = dados.type in TIPOS_CARTAO
    if cartao and not all(getattr(dados, campo) for campo in CAMPOS_CARTAO):
        raise HTTPException(status_code=422, detail="Para cartões, todos os campos de cartão são obrigatórios")

    metodo = {"id": novo_id(), "type": dados.type, "is_default": bool(dados.is_default)}
    if cartao:
        for campo in CAMPOS_CARTAO:
            metodo[campo] = getattr(dados, campo)

    metodos = usuario.setdefault("payment_methods", [])
    if metodo["is_default"]:
        for existente in metodos:
            existente["is_default"] = False
    if not metodos:
        metodo["is_default"] = True

    metodos.append(metodo)
    banco.usuarios.atualizar(usuario)
    return {"message": "Método de pagamento adicionado com sucesso", "paymentMethod": mascarar_metodo(metodo)}


@router.patch("/payment-methods/{payment_id}")
async def atualizar_metodo(
    payment_id: str,
    dados: MetodoPagamento,
    banco: Banco = Depends(get_banco),
    usuario: dict = Depends(usuario_atual),
):
    metodo = _localizar(usuario, payment_id)

    if dados.type:
        if dados.type not in TIPOS_PAGAMENTO:
            raise HTTPException(status_code=422, detail="Tipo de pagamento inválido")
        metodo["type"] = dados.type

    if metodo["type"] in TIPOS_CARTAO:
        for campo in CAMPOS_CARTAO:
            valor = getattr(dados, campo)
            if valor:
                metodo[campo] = valor
        if not all(metodo.get(campo) for campo in CAMPOS_CARTAO):
            raise HTTPException(status_code=422, detail="Para cartões, todos os campos de cartão são obrigatórios")
    else:
        for campo in CAMPOS_CARTAO:
            metodo.pop(campo, None)

    if dados.is_default:
        for existente in usuario["payment_methods"]:
            existente["is_default"] = False
        metodo["is_default"] = True

    banco.usuarios.atualizar(usuario)
    return {"message": "Método de pagamento atualizado com sucesso", "paymentMethod": mascarar_metodo(metodo)}


@router.delete("/payment-methods/{payment_id}")
async def remover_metodo(
    payment_id: str,
    banco: Banco = Depends(get_banco),
    usuario: dict = Depends(usuario_atual),
):
    metodo = _localizar(usuario, payment_id)
    usuario["payment_methods"].remove(metodo)

    if metodo.get("is_default") and usuario["payment_methods"]:
        usuario["payment_methods"][0]["is_default"] = True

    banco.usuarios.atualizar(usuario)
    return {"message": "Método de pagamento removido com sucesso"}
