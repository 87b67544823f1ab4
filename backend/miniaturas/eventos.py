import json
import logging
import threading

import pika  # type: ignore
from pika.exceptions import AMQPError  # type: ignore

from miniaturas.armazenamento import Banco
from miniaturas.config import (
    TOPIC_PAGAMENTOS_APROVADOS,
    TOPIC_PAGAMENTOS_RECUSADOS,
    TOPIC_PEDIDOS_ENVIADOS,
    Settings,
)
from miniaturas.estoque import atualizar_status_pedido

logger = logging.getLogger(__name__)

# Tópicos consumidos e o status que cada um aplica ao pedido
STATUS_POR_TOPICO = {
    TOPIC_PAGAMENTOS_APROVADOS: "approved",
    TOPIC_PAGAMENTOS_RECUSADOS: "refused",
    TOPIC_PEDIDOS_ENVIADOS: "shipped",
}


def _parametros(settings: Settings) -> pika.ConnectionParameters:
    credentials = pika.PlainCredentials(settings.rabbitmq_user, settings.rabbitmq_password)
    return pika.ConnectionParameters(host=settings.rabbitmq_host, credentials=credentials)


class PublicadorEventos:
    def __init__(self, settings: Settings):
        self.settings = settings

    def enviar_evento(self, evento: dict, routing_key: str) -> bool:
        if not self.settings.eventos_habilitados:
            logger.debug(f"Eventos desabilitados; '{routing_key}' não publicado.")
            return False

        try:
            connection = pika.BlockingConnection(_parametros(self.settings))
            try:
                channel = connection.channel()
                channel.exchange_declare(exchange=self.settings.rabbitmq_exchange, exchange_type='topic')
                channel.basic_publish(
                    exchange=self.settings.rabbitmq_exchange,
                    routing_key=routing_key,
                    body=json.dumps(evento),
                )
            finally:
                connection.close()
        except AMQPError as e:
            logger.error(f"Erro ao publicar evento '{routing_key}': {e}")
            return False

        logger.info(f"Evento enviado para a exchange '{self.settings.rabbitmq_exchange}' com chave {routing_key}")
        return True


def processar_evento(banco: Banco, routing_key: str, corpo: bytes):
    try:
        evento = json.loads(corpo)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.error(f"Erro ao decodificar o evento recebido na fila '{routing_key}'.")
        return None

    status = STATUS_POR_TOPICO.get(routing_key)
    if status is None:
        logger.warning(f"Evento com chave desconhecida ignorado: {routing_key}")
        return None

    if not isinstance(evento, dict) or "id" not in evento:
        logger.error(f"Formato de evento inválido na fila '{routing_key}': {evento}")
        return None

    pedido = atualizar_status_pedido(banco, evento["id"], status)
    if pedido is None:
        logger.warning(f"Pedido {evento['id']} do evento '{routing_key}' não encontrado.")
    return pedido


def consumir_eventos(banco: Banco, settings: Settings):
    try:
        connection = pika.BlockingConnection(_parametros(settings))
        channel = connection.channel()
        channel.exchange_declare(exchange=settings.rabbitmq_exchange, exchange_type='topic')

        def callback(ch, method, properties, body):
            try:
                processar_evento(banco, method.routing_key, body)
            except Exception as e:
                logger.exception(f"Erro ao processar evento da chave {method.routing_key}: {e}")
            ch.basic_ack(delivery_tag=method.delivery_tag)

        for routing_key in STATUS_POR_TOPICO:
            result = channel.queue_declare(queue='', exclusive=True)
            fila = result.method.queue
            channel.queue_bind(exchange=settings.rabbitmq_exchange, queue=fila, routing_key=routing_key)
            channel.basic_consume(queue=fila, on_message_callback=callback)
            logger.info(f"Consumindo mensagens da chave {routing_key}")

        channel.start_consuming()
    except AMQPError as e:
        logger.error(f"Erro ao consumir eventos: {e}")


def iniciar_consumidor(banco: Banco, settings: Settings) -> threading.Thread:
    thread = threading.Thread(target=consumir_eventos, args=(banco, settings), daemon=True)
    thread.start()
    return thread
