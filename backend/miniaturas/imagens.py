import logging
import os
import random
import re
import shutil
import time
from pathlib import Path

from fastapi import HTTPException, UploadFile

from miniaturas.config import Settings

logger = logging.getLogger(__name__)

EXTENSOES_PERMITIDAS = re.compile(r'\.(png|jpg|jpeg)$', re.IGNORECASE)

PASTA_PRODUTOS = "products"
PASTA_USUARIOS = "users"


def nome_arquivo(nome_original: str) -> str:
    extensao = os.path.splitext(nome_original)[1]
    return f"{int(time.time() * 1000)}{random.randint(0, 999)}{extensao}"


def validar_imagem(upload: UploadFile):
    if not upload.filename or not EXTENSOES_PERMITIDAS.search(upload.filename):
        raise HTTPException(status_code=422, detail="Por favor, envie apenas jpg, jpeg ou png!")


def salvar_imagem(upload: UploadFile, pasta: str, settings: Settings) -> str:
    validar_imagem(upload)

    destino = Path(settings.images_dir) / pasta
    destino.mkdir(parents=True, exist_ok=True)

    nome = nome_arquivo(upload.filename)
    with open(destino / nome, 'wb') as file:
        shutil.copyfileobj(upload.file, file)

    logger.info(f"Imagem {upload.filename} salva como {pasta}/{nome}")
    return nome


def salvar_imagens(uploads, pasta: str, settings: Settings) -> list:
    # nada é gravado se algum arquivo tiver extensão inválida
    for upload in uploads:
        validar_imagem(upload)
    return [salvar_imagem(upload, pasta, settings) for upload in uploads]
