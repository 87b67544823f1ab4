import json
import logging
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile

from miniaturas.armazenamento import Banco, id_valido, mais_recentes_primeiro, novo_id
from miniaturas.config import Settings
from miniaturas.dependencias import admin_atual, get_banco, get_config, validar_id
from miniaturas.imagens import PASTA_PRODUTOS, salvar_imagens
from miniaturas.models import TIPOS_PRODUTO, ModeloProduto, RemocaoImagem

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/products", tags=["produtos"])


def com_categoria(banco: Banco, produto: dict) -> dict:
    populado = dict(produto)
    if produto.get("category"):
        populado["category"] = banco.categorias.buscar(produto["category"])
    return populado


def listar(banco: Banco, predicado=None) -> dict:
    produtos = banco.produtos.ler() if predicado is None else banco.produtos.filtrar(predicado)
    return {"products": [com_categoria(banco, p) for p in mais_recentes_primeiro(produtos)]}


def normalizar_tags(tags: Optional[List[str]]) -> List[str]:
    # aceita campos repetidos ou uma lista separada por vírgulas
    resultado = []
    for tag in tags or []:
        resultado.extend(parte.strip() for parte in tag.split(",") if parte.strip())
    return resultado


def ler_especificacoes(specifications: Optional[str]) -> dict:
    if not specifications:
        return {}
    try:
        valor = json.loads(specifications)
    except json.JSONDecodeError:
        raise HTTPException(status_code=422, detail="As especificações devem ser um objeto JSON")
    if not isinstance(valor, dict):
        raise HTTPException(status_code=422, detail="As especificações devem ser um objeto JSON")
    return valor


def validar_preco_estoque(price: Optional[float], stock: Optional[int]):
    if price is not None and price < 0:
        raise HTTPException(status_code=422, detail="O preço necessita ser um valor positivo")
    if stock is not None and stock < 0:
        raise HTTPException(status_code=422, detail="O estoque não pode ser negativo")


def validar_tipo(type: str):
    if type not in TIPOS_PRODUTO:
        raise HTTPException(status_code=422, detail="Tipo de produto inválido")


def buscar_produto(banco: Banco, id: str) -> dict:
    validar_id(id)
    produto = banco.produtos.buscar(id)
    if produto is None:
        raise HTTPException(status_code=404, detail="Produto não encontrado")
    return produto


def arquivos_enviados(images: Optional[List[UploadFile]]) -> List[UploadFile]:
    return [imagem for imagem in images or [] if imagem.filename]


###################################################################

@router.get("")
async def listar_produtos(banco: Banco = Depends(get_banco)):
    return listar(banco)


@router.get("/featured")
async def listar_destaques(banco: Banco = Depends(get_banco)):
    return listar(banco, lambda p: p.get("featured"))


@router.get("/type/{type}")
async def listar_por_tipo(type: str, banco: Banco = Depends(get_banco)):
    validar_tipo(type)
    return listar(banco, lambda p: p.get("type") == type)


@router.get("/search")
async def buscar_produtos(q: Optional[str] = Query(None), banco: Banco = Depends(get_banco)):
    if not q:
        raise HTTPException(status_code=422, detail="Termo de busca não informado")

    termo = q.lower()

    def corresponde(produto: dict) -> bool:
        return (
            termo in produto.get("name", "").lower()
            or termo in produto.get("description", "").lower()
            or any(termo in tag.lower() for tag in produto.get("tags", []))
        )

    return listar(banco, corresponde)


@router.get("/category/{category_id}")
async def listar_por_categoria(category_id: str, banco: Banco = Depends(get_banco)):
    if not id_valido(category_id):
        raise HTTPException(status_code=422, detail="ID de categoria inválido")
    return listar(banco, lambda p: p.get("category") == category_id)


@router.get("/{id}")
async def obter_produto(id: str, banco: Banco = Depends(get_banco)):
    return {"product": com_categoria(banco, buscar_produto(banco, id))}


@router.post("", status_code=201)
async def criar_produto(
    name: Optional[str] = Form(None),
    price: Optional[float] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    tags: Optional[List[str]] = Form(None),
    specifications: Optional[str] = Form(None),
    featured: bool = Form(False),
    stock: int = Form(0),
    images: Optional[List[UploadFile]] = File(None),
    banco: Banco = Depends(get_banco),
    settings: Settings = Depends(get_config),
    atual: dict = Depends(admin_atual),
):
    # Validações
    if not name:
        raise HTTPException(status_code=422, detail="O nome é obrigatório")
    if price is None:
        raise HTTPException(status_code=422, detail="O preço é obrigatório")
    if not description:
        raise HTTPException(status_code=422, detail="A descrição é obrigatória")
    if not category:
        raise HTTPException(status_code=422, detail="A categoria é obrigatória")
    if not type:
        raise HTTPException(status_code=422, detail="O tipo é obrigatório")

    validar_preco_estoque(price, stock)
    validar_tipo(type)
    especificacoes = ler_especificacoes(specifications)

    if banco.produtos.primeiro(lambda p: p["name"] == name):
        raise HTTPException(status_code=422, detail="Já existe um produto com este nome")

    if banco.categorias.buscar(category) is None:
        raise HTTPException(status_code=422, detail="Categoria não encontrada")

    enviados = arquivos_enviados(images)
    if not enviados:
        raise HTTPException(status_code=422, detail="As imagens são obrigatórias")

    produto = banco.produtos.inserir({
        "name": name,
        "price": price,
        "description": description,
        "category": category,
        "type": type,
        "tags": normalizar_tags(tags),
        "images": salvar_imagens(enviados, PASTA_PRODUTOS, settings),
        "available_models": [],
        "specifications": especificacoes,
        "featured": featured,
        "stock": stock,
        "sold": 0,
    })
    logger.info(f"Produto {produto['name']} criado por {atual['email']}.")
    return {"message": "Produto criado com sucesso", "product": produto}


@router.patch("/{id}")
async def atualizar_produto(
    id: str,
    name: Optional[str] = Form(None),
    price: Optional[float] = Form(None),
    description: Optional[str] = Form(None),
    category: Optional[str] = Form(None),
    type: Optional[str] = Form(None),
    tags: Optional[List[str]] = Form(None),
    specifications: Optional[str] = Form(None),
    featured: Optional[bool] = Form(None),
    stock: Optional[int] = Form(None),
    images: Optional[List[UploadFile]] = File(None),
    banco: Banco = Depends(get_banco),
    settings: Settings = Depends(get_config),
    atual: dict = Depends(admin_atual),
):
    produto = buscar_produto(banco, id)
    validar_preco_estoque(price, stock)

    if name and name != produto["name"]:
        if banco.produtos.primeiro(lambda p: p["name"] == name and p["id"] != id):
            raise HTTPException(status_code=422, detail="Já existe um produto com este nome")
        produto["name"] = name

    if price is not None:
        produto["price"] = price
    if description:
        produto["description"] = description

    if category:
        if banco.categorias.buscar(category) is None:
            raise HTTPException(status_code=422, detail="Categoria não encontrada")
        produto["category"] = category

    if type:
        validar_tipo(type)
        produto["type"] = type
    if tags is not None:
        produto["tags"] = normalizar_tags(tags)
    if specifications is not None:
        produto["specifications"] = ler_especificacoes(specifications)
    if featured is not None:
        produto["featured"] = featured
    if stock is not None:
        produto["stock"] = stock

    # Novas imagens são adicionadas às existentes
    enviados = arquivos_enviados(images)
    if enviados:
        produto["images"] = produto["images"] + salvar_imagens(enviados, PASTA_PRODUTOS, settings)

    produto = banco.produtos.atualizar(produto)
    return {"message": "Produto atualizado com sucesso", "product": produto}


@router.patch("/{id}/remove-image")
async def remover_imagem(
    id: str,
    dados: RemocaoImagem,
    banco: Banco = Depends(get_banco),
    settings: Settings = Depends(get_config),
    atual: dict = Depends(admin_atual),
):
    validar_id(id)
    if not dados.filename:
        raise HTTPException(status_code=422, detail="Nome do arquivo não informado")

    produto = buscar_produto(banco, id)
    if dados.filename not in produto["images"]:
        raise HTTPException(status_code=404, detail="Imagem não encontrada")

    produto["images"] = [imagem for imagem in produto["images"] if imagem != dados.filename]
    produto = banco.produtos.atualizar(produto)

    arquivo = Path(settings.images_dir) / PASTA_PRODUTOS / dados.filename
    if arquivo.exists():
        arquivo.unlink()
        logger.info(f"Arquivo {arquivo} removido do disco.")

    return {"message": "Imagem removida com sucesso", "product": produto}


@router.post("/{id}/models")
async def adicionar_modelo(
    id: str,
    dados: ModeloProduto,
    banco: Banco = Depends(get_banco),
    atual: dict = Depends(admin_atual),
):
    produto = buscar_produto(banco, id)

    if not dados.size:
        raise HTTPException(status_code=422, detail="O tamanho é obrigatório")
    if not dados.color:
        raise HTTPException(status_code=422, detail="A cor é obrigatória")
    if not dados.quantity:
        raise HTTPException(status_code=422, detail="A quantidade é obrigatória")
    if dados.quantity < 0:
        raise HTTPException(status_code=422, detail="O estoque não pode ser negativo")

    modelos = produto.setdefault("available_models", [])
    if any(m["size"] == dados.size and m["color"] == dados.color for m in modelos):
        raise HTTPException(status_code=422, detail="Este modelo já existe para o produto")

    modelos.append({"id": novo_id(), "size": dados.size, "color": dados.color, "quantity": dados.quantity})
    # estoque total = soma dos modelos
    produto["stock"] = sum(m["quantity"] for m in modelos)

    produto = banco.produtos.atualizar(produto)
    return {"message": "Modelo adicionado com sucesso", "product": produto}


@router.delete("/{id}/models/{model_id}")
async def remover_modelo(
    id: str,
    model_id: str,
    banco: Banco = Depends(get_banco),
    atual: dict = Depends(admin_atual),
):
    validar_id(model_id)
    produto = buscar_produto(banco, id)

    modelos = produto.get("available_models", [])
    if not any(m["id"] == model_id for m in modelos):
        raise HTTPException(status_code=404, detail="Modelo não encontrado")

    produto["available_models"] = [m for m in modelos if m["id"] != model_id]
    produto["stock"] = sum(m["quantity"] for m in produto["available_models"])

    produto = banco.produtos.atualizar(produto)
    return {"message": "Modelo removido com sucesso", "product": produto}


@router.delete("/{id}")
async def excluir_produto(
    id: str,
    banco: Banco = Depends(get_banco),
    atual: dict = Depends(admin_atual),
):
    buscar_produto(banco, id)
    banco.produtos.remover(id)
    removidos = banco.carrinho.remover_onde(lambda item: item["product_id"] == id)
    logger.info(f"Produto {id} removido ({removidos} itens de carrinho descartados).")
    return {"message": "Produto removido com sucesso"}
