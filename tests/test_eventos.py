import json
import threading
import time
from unittest.mock import MagicMock

import pytest
from pika.exceptions import AMQPConnectionError

from miniaturas import estoque, eventos
from miniaturas.armazenamento import Banco
from miniaturas.config import (
    TOPIC_PAGAMENTOS_APROVADOS,
    TOPIC_PAGAMENTOS_RECUSADOS,
    TOPIC_PEDIDOS_CRIADOS,
    TOPIC_PEDIDOS_ENVIADOS,
    Settings,
)
from miniaturas.estoque import atualizar_status_pedido
from miniaturas.eventos import PublicadorEventos, processar_evento


@pytest.fixture
def banco_com_pedido(tmp_path):
    banco = Banco(tmp_path)
    produto = banco.produtos.inserir({"name": "F40", "price": 100, "stock": 1, "sold": 2})
    pedido = banco.pedidos.inserir({
        "user_id": "u" * 24,
        "products": [{"product": produto["id"], "name": "F40", "price": 100, "quantity": 2, "image": None}],
        "total": 200,
        "status": "pending",
        "restocked": False,
    })
    return banco, pedido, produto


def _corpo(pedido):
    return json.dumps({"id": pedido["id"], "status": "qualquer"}).encode()


def test_pagamento_aprovado(banco_com_pedido):
    banco, pedido, _ = banco_com_pedido
    atualizado = processar_evento(banco, TOPIC_PAGAMENTOS_APROVADOS, _corpo(pedido))
    assert atualizado["status"] == "approved"
    assert banco.pedidos.buscar(pedido["id"])["status"] == "approved"


def test_pagamento_recusado_repoe_estoque(banco_com_pedido):
    banco, pedido, produto = banco_com_pedido
    processar_evento(banco, TOPIC_PAGAMENTOS_RECUSADOS, _corpo(pedido))
    processar_evento(banco, TOPIC_PAGAMENTOS_RECUSADOS, _corpo(pedido))

    assert banco.pedidos.buscar(pedido["id"])["status"] == "refused"
    assert banco.produtos.buscar(produto["id"])["stock"] == 3
    assert banco.produtos.buscar(produto["id"])["sold"] == 0


def test_pedido_enviado(banco_com_pedido):
    banco, pedido, _ = banco_com_pedido
    assert processar_evento(banco, TOPIC_PEDIDOS_ENVIADOS, _corpo(pedido))["status"] == "shipped"


def test_eventos_invalidos_sao_descartados(banco_com_pedido):
    banco, pedido, _ = banco_com_pedido
    assert processar_evento(banco, TOPIC_PEDIDOS_ENVIADOS, b"{nao json") is None
    assert processar_evento(banco, TOPIC_PEDIDOS_ENVIADOS, b'{"sem": "id"}') is None
    assert processar_evento(banco, "outra.chave", _corpo(pedido)) is None
    assert processar_evento(banco, TOPIC_PEDIDOS_ENVIADOS, b'{"id": "inexistente"}') is None
    assert banco.pedidos.buscar(pedido["id"])["status"] == "pending"


def test_publicador_desabilitado_nao_conecta(monkeypatch):
    conexao = MagicMock()
    monkeypatch.setattr(eventos.pika, "BlockingConnection", conexao)

    assert PublicadorEventos(Settings(rabbitmq_host=None)).enviar_evento({"id": 1}, TOPIC_PEDIDOS_CRIADOS) is False
    conexao.assert_not_called()


def test_publicador_envia_para_exchange_topic(monkeypatch):
    conexao = MagicMock()
    monkeypatch.setattr(eventos.pika, "BlockingConnection", conexao)

    settings = Settings(rabbitmq_host="rabbitmq", rabbitmq_exchange="loja")
    assert PublicadorEventos(settings).enviar_evento({"id": 1}, TOPIC_PEDIDOS_CRIADOS) is True

    channel = conexao.return_value.channel.return_value
    channel.exchange_declare.assert_called_once_with(exchange="loja", exchange_type="topic")
    channel.basic_publish.assert_called_once_with(
        exchange="loja", routing_key=TOPIC_PEDIDOS_CRIADOS, body=json.dumps({"id": 1})
    )
    conexao.return_value.close.assert_called_once()


def test_falha_no_broker_nao_propaga(monkeypatch):
    monkeypatch.setattr(eventos.pika, "BlockingConnection", MagicMock(side_effect=AMQPConnectionError("fora")))
    settings = Settings(rabbitmq_host="rabbitmq")
    assert PublicadorEventos(settings).enviar_evento({"id": 1}, TOPIC_PEDIDOS_CRIADOS) is False


def test_cancelamento_concorrente_repoe_estoque_uma_vez(banco_com_pedido, monkeypatch):
    banco, pedido, produto = banco_com_pedido
    repor_original = estoque.repor_estoque

    def repor_lento(banco, pedido):
        time.sleep(0.05)
        repor_original(banco, pedido)

    monkeypatch.setattr(estoque, "repor_estoque", repor_lento)

    threads = [
        threading.Thread(target=atualizar_status_pedido, args=(banco, pedido["id"], status))
        for status in ("cancelled", "refused")
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert banco.produtos.buscar(produto["id"])["stock"] == 3
    assert banco.pedidos.buscar(pedido["id"])["restocked"] is True


def test_corpo_que_nao_e_utf8_e_descartado(banco_com_pedido):
    banco, pedido, _ = banco_com_pedido
    assert processar_evento(banco, TOPIC_PAGAMENTOS_APROVADOS, b'{"id": "\xff"}') is None
    assert banco.pedidos.buscar(pedido["id"])["status"] == "pending"


def _consumidor_com_mensagem(monkeypatch, routing_key, corpo):
    """Simula uma conexão que entrega uma única mensagem ao callback registrado."""
    conexao = MagicMock()
    channel = conexao.return_value.channel.return_value
    callbacks = []
    channel.basic_consume.side_effect = lambda queue, on_message_callback: callbacks.append(on_message_callback)

    def entregar():
        method = MagicMock(routing_key=routing_key, delivery_tag=7)
        callbacks[0](channel, method, None, corpo)

    channel.start_consuming.side_effect = entregar
    monkeypatch.setattr(eventos.pika, "BlockingConnection", conexao)
    return channel


def test_consumidor_sobrevive_a_mensagem_invalida(banco_com_pedido, monkeypatch):
    banco, _, _ = banco_com_pedido
    channel = _consumidor_com_mensagem(monkeypatch, TOPIC_PAGAMENTOS_APROVADOS, b"\xff\xfe")

    eventos.consumir_eventos(banco, Settings(rabbitmq_host="rabbitmq"))

    channel.basic_ack.assert_called_once_with(delivery_tag=7)


def test_consumidor_sobrevive_a_erro_de_armazenamento(banco_com_pedido, monkeypatch):
    banco, pedido, _ = banco_com_pedido
    channel = _consumidor_com_mensagem(monkeypatch, TOPIC_PAGAMENTOS_APROVADOS, _corpo(pedido))
    monkeypatch.setattr(eventos, "atualizar_status_pedido", MagicMock(side_effect=OSError("disco cheio")))

    eventos.consumir_eventos(banco, Settings(rabbitmq_host="rabbitmq"))

    channel.basic_ack.assert_called_once_with(delivery_tag=7)
