import logging

from fastapi import APIRouter, Depends, HTTPException

from miniaturas.armazenamento import Banco, mais_recentes_primeiro
from miniaturas.carrinho import itens_do_usuario
from miniaturas.config import TOPIC_PEDIDOS_ATUALIZADOS, TOPIC_PEDIDOS_CRIADOS
from miniaturas.dependencias import admin_atual, get_banco, get_publicador, usuario_atual
from miniaturas.estoque import atualizar_status_pedido, baixar_estoque
from miniaturas.eventos import PublicadorEventos
from miniaturas.models import STATUS_PEDIDO, NovoPedido, StatusPedido

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users/orders", tags=["pedidos"])


def evento_pedido(pedido: dict) -> dict:
    return {
        "id": pedido["id"],
        "user_id": pedido["user_id"],
        "products": [
            {"product_id": item["product"], "name": item["name"], "quantity": item["quantity"]}
            for item in pedido["products"]
        ],
        "total": pedido["total"],
        "status": pedido["status"],
    }


@router.post("", status_code=201)
def criar_pedido(
    dados: NovoPedido,
    banco: Banco = Depends(get_banco),
    publicador: PublicadorEventos = Depends(get_publicador),
    usuario: dict = Depends(usuario_atual),
):
    itens = itens_do_usuario(banco, usuario["id"])
    if not itens:
        raise HTTPException(status_code=422, detail="Carrinho vazio. Adicione produtos antes de finalizar o pedido.")

    endereco = next((e for e in usuario.get("addresses", []) if e["id"] == dados.address_id), None)
    if endereco is None:
        raise HTTPException(status_code=422, detail="Endereço não encontrado")

    metodo = next((m for m in usuario.get("payment_methods", []) if m["id"] == dados.payment_method_id), None)
    if metodo is None:
        raise HTTPException(status_code=422, detail="Método de pagamento não encontrado")

    products = []
    for item in itens:
        product = banco.produtos.buscar(item["product_id"])
        if product is None:
            raise HTTPException(status_code=422, detail=f"Produto {item['product_id']} não está mais disponível")
        products.append({
            "product": product["id"],
            "name": product["name"],
            "price": product["price"],
            "quantity": item["quantity"],
            "image": product["images"][0] if product.get("images") else None,
        })

    with banco.transacao:
        pedido = banco.pedidos.inserir({
            "user_id": usuario["id"],
            "products": products,
            "total": sum(p["price"] * p["quantity"] for p in products),
            "status": "pending",
            "payment_method": metodo["id"],
            "shipping_address": endereco["id"],
            "restocked": False,
        })

        baixar_estoque(banco, products)
        banco.carrinho.remover_onde(lambda item: item["user_id"] == usuario["id"])

    publicador.enviar_evento(evento_pedido(pedido), TOPIC_PEDIDOS_CRIADOS)
    logger.info(f"Pedido {pedido['id']} criado para o usuário {usuario['id']}.")
    return {"message": "Pedido criado com sucesso", "order": pedido}


@router.get("")
async def listar_pedidos(banco: Banco = Depends(get_banco), usuario: dict = Depends(usuario_atual)):
    pedidos = banco.pedidos.filtrar(lambda p: p["user_id"] == usuario["id"])
    return {"orders": mais_recentes_primeiro(pedidos)}


@router.get("/{order_id}")
async def obter_pedido(order_id: str, banco: Banco = Depends(get_banco), usuario: dict = Depends(usuario_atual)):
    pedido = banco.pedidos.buscar(order_id)
    if pedido is None or pedido["user_id"] != usuario["id"]:
        raise HTTPException(status_code=404, detail="Pedido não encontrado")
    return {"order": pedido}


@router.patch("/{order_id}/status")
def alterar_status(
    order_id: str,
    dados: StatusPedido,
    banco: Banco = Depends(get_banco),
    publicador: PublicadorEventos = Depends(get_publicador),
    atual: dict = Depends(admin_atual),
):
    if dados.status not in STATUS_PEDIDO:
        raise HTTPException(status_code=422, detail="Status de pedido inválido")

    pedido = atualizar_status_pedido(banco, order_id, dados.status)
    if pedido is None:
        raise HTTPException(status_code=404, detail="Pedido não encontrado")

    publicador.enviar_evento(evento_pedido(pedido), TOPIC_PEDIDOS_ATUALIZADOS)
    return {"message": "Status do pedido atualizado", "order": pedido}
