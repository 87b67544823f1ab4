"""
Regras de estoque e de status de pedido.

O pedido criado baixa o estoque de cada produto (sem ficar negativo) e soma
em ``sold``. Um pedido recusado ou cancelado devolve as quantidades ao
estoque uma única vez (campo ``restocked``).
"""

import logging
from typing import List, Optional

from miniaturas.armazenamento import Banco
from miniaturas.models import STATUS_PEDIDO

logger = logging.getLogger(__name__)

STATUS_COM_DEVOLUCAO = ('refused', 'cancelled')


def baixar_estoque(banco: Banco, itens: List[dict]):
    with banco.transacao:
        for item in itens:
            product = banco.produtos.buscar(item["product"])
            if product is None:
                logger.warning(f"Produto {item['product']} não encontrado ao baixar estoque.")
                continue
            product["stock"] = max(0, product.get("stock", 0) - item["quantity"])
            product["sold"] = product.get("sold", 0) + item["quantity"]
            banco.produtos.atualizar(product)
            logger.info(f"Estoque atualizado após pedido criado: {product['name']} -> {product['stock']}")


def repor_estoque(banco: Banco, pedido: dict):
    with banco.transacao:
        for item in pedido["products"]:
            product = banco.produtos.buscar(item["product"])
            if product is None:
                logger.warning(f"Produto {item['product']} não encontrado ao repor estoque.")
                continue
            product["stock"] = product.get("stock", 0) + item["quantity"]
            product["sold"] = max(0, product.get("sold", 0) - item["quantity"])
            banco.produtos.atualizar(product)
            logger.info(f"Estoque reposto para o produto {product['name']} -> {product['stock']}")


def atualizar_status_pedido(banco: Banco, pedido_id: str, status: str) -> Optional[dict]:
    """Aplica o novo status ao pedido. Retorna None se o pedido não existir."""
    if status not in STATUS_PEDIDO:
        raise ValueError(f"Status de pedido inválido: {status}")

    with banco.transacao:
        pedido = banco.pedidos.buscar(pedido_id)
        if pedido is None:
            return None

        pedido["status"] = status
        if status in STATUS_COM_DEVOLUCAO and not pedido.get("restocked"):
            repor_estoque(banco, pedido)
            pedido["restocked"] = True

        banco.pedidos.atualizar(pedido)
    logger.info(f"Pedido {pedido_id} atualizado para status '{status}'.")
    return pedido
