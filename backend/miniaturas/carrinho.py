import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException

from miniaturas.armazenamento import Banco
from miniaturas.dependencias import get_banco, usuario_atual
from miniaturas.models import AtualizacaoCarrinho, ItemCarrinho, MesclaCarrinho

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users/cart", tags=["carrinho"])


def itens_do_usuario(banco: Banco, user_id: str) -> List[dict]:
    return banco.carrinho.filtrar(lambda item: item["user_id"] == user_id)


def resumo_carrinho(banco: Banco, user_id: str) -> dict:
    cart = []
    for item in itens_do_usuario(banco, user_id):
        populado = dict(item)
        populado["product"] = banco.produtos.buscar(item["product_id"])
        cart.append(populado)

    total = sum(item["product"]["price"] * item["quantity"] for item in cart if item["product"])
    item_count = sum(item["quantity"] for item in cart)
    return {"cart": cart, "total": total, "itemCount": item_count}


def adicionar_item(banco: Banco, user_id: str, product_id: str, quantity: int) -> dict:
    """Soma a quantidade se o produto já está no carrinho, senão cria o item."""
    existente = banco.carrinho.primeiro(
        lambda item: item["user_id"] == user_id and item["product_id"] == product_id
    )
    if existente:
        existente["quantity"] += quantity
        return banco.carrinho.atualizar(existente)

    return banco.carrinho.inserir({"user_id": user_id, "product_id": product_id, "quantity": quantity})


def localizar_item(banco: Banco, user_id: str, item_id: str) -> dict:
    item = banco.carrinho.buscar(item_id)
    if item is None or item["user_id"] != user_id:
        raise HTTPException(status_code=404, detail="Item não encontrado no carrinho")
    return item


###################################################################

@router.get("")
async def listar_carrinho(banco: Banco = Depends(get_banco), usuario: dict = Depends(usuario_atual)):
    return resumo_carrinho(banco, usuario["id"])


@router.post("")
async def adicionar_ao_carrinho(
    novo_item: ItemCarrinho,
    banco: Banco = Depends(get_banco),
    usuario: dict = Depends(usuario_atual),
):
    if novo_item.quantity < 1:
        raise HTTPException(status_code=422, detail="Quantidade deve ser maior que zero.")
    if banco.produtos.buscar(novo_item.product_id) is None:
        raise HTTPException(status_code=404, detail="Produto não encontrado")

    adicionar_item(banco, usuario["id"], novo_item.product_id, novo_item.quantity)
    return {"message": "Produto adicionado ao carrinho", **resumo_carrinho(banco, usuario["id"])}


@router.post("/merge")
async def mesclar_carrinho(
    dados: MesclaCarrinho,
    banco: Banco = Depends(get_banco),
    usuario: dict = Depends(usuario_atual),
):
    """Incorpora o carrinho guardado no navegador (localStorage) ao carrinho do usuário após o login."""
    skipped = []
    for item in dados.items:
        if item.quantity < 1 or banco.produtos.buscar(item.product_id) is None:
            skipped.append(item.product_id)
            continue
        adicionar_item(banco, usuario["id"], item.product_id, item.quantity)

    if skipped:
        logger.info(f"Mescla de carrinho do usuário {usuario['id']} ignorou {len(skipped)} itens.")
    return {"message": "Carrinho sincronizado", "skipped": skipped, **resumo_carrinho(banco, usuario["id"])}


@router.put("/{item_id}")
async def atualizar_quantidade(
    item_id: str,
    dados: AtualizacaoCarrinho,
    banco: Banco = Depends(get_banco),
    usuario: dict = Depends(usuario_atual),
):
    item = localizar_item(banco, usuario["id"], item_id)

    # Quantidade zero ou negativa remove o item
    if dados.quantity <= 0:
        banco.carrinho.remover(item_id)
    else:
        item["quantity"] = dados.quantity
        banco.carrinho.atualizar(item)

    return {"message": "Carrinho atualizado com sucesso", **resumo_carrinho(banco, usuario["id"])}


@router.delete("/{item_id}")
async def remover_do_carrinho(
    item_id: str,
    banco: Banco = Depends(get_banco),
    usuario: dict = Depends(usuario_atual),
):
    localizar_item(banco, usuario["id"], item_id)
    banco.carrinho.remover(item_id)
    return {"message": "Item removido do carrinho", **resumo_carrinho(banco, usuario["id"])}


@router.delete("")
async def esvaziar_carrinho(banco: Banco = Depends(get_banco), usuario: dict = Depends(usuario_atual)):
    banco.carrinho.remover_onde(lambda item: item["user_id"] == usuario["id"])
    return {"message": "Carrinho esvaziado com sucesso", "cart": [], "total": 0, "itemCount": 0}
