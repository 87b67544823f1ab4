import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from miniaturas import carrinho, categorias, enderecos, metodos_pagamento, pedidos, produtos, usuarios
from miniaturas.armazenamento import Banco
from miniaturas.config import Settings, configurar_logging, get_settings
from miniaturas.eventos import PublicadorEventos, iniciar_consumidor
from miniaturas.imagens import PASTA_PRODUTOS, PASTA_USUARIOS

logger = logging.getLogger(__name__)


def criar_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()
    configurar_logging(settings.log_level)

    app = FastAPI(title=settings.app_name)
    app.state.settings = settings
    app.state.banco = Banco(settings.data_dir)
    app.state.publicador = PublicadorEventos(settings)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origens_cors,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # /api/users/{id} por último: as rotas fixas de /api/users precisam vir antes
    for modulo in (carrinho, pedidos, enderecos, metodos_pagamento, usuarios, produtos, categorias):
        app.include_router(modulo.router)

    for pasta in (PASTA_PRODUTOS, PASTA_USUARIOS):
        (Path(settings.images_dir) / pasta).mkdir(parents=True, exist_ok=True)
    app.mount("/public/images", StaticFiles(directory=settings.images_dir), name="imagens")

    @app.get("/")
    async def root():
        return {"message": f"{settings.app_name} está rodando"}

    @app.on_event("startup")
    def iniciar():
        usuarios.garantir_admin_inicial(app.state.banco, settings)
        if settings.eventos_habilitados:
            iniciar_consumidor(app.state.banco, settings)
            logger.info(f"Consumidor de eventos iniciado em {settings.rabbitmq_host}.")
        else:
            logger.info("RabbitMQ não configurado; eventos de pedido desabilitados.")

    return app
