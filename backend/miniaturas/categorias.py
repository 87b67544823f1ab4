import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from miniaturas.armazenamento import Banco
from miniaturas.dependencias import admin_atual, get_banco, validar_id
from miniaturas.models import Categoria

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/categories", tags=["categorias"])


def por_nome(categorias):
    return sorted(categorias, key=lambda c: c["name"])


def com_pai(banco: Banco, categoria: dict) -> dict:
    populada = dict(categoria)
    if categoria.get("parent"):
        populada["parent"] = banco.categorias.buscar(categoria["parent"])
    return populada


def criaria_ciclo(banco: Banco, categoria_id: str, novo_pai: str) -> bool:
    """Sobe a hierarquia a partir de ``novo_pai`` procurando ``categoria_id``."""
    limite = len(banco.categorias.ler())
    atual: Optional[str] = novo_pai
    passos = 0
    while atual and passos <= limite:
        if atual == categoria_id:
            return True
        registro = banco.categorias.buscar(atual)
        if registro is None:
            return False
        atual = registro.get("parent")
        passos += 1
    return False


###################################################################

@router.get("")
async def listar_categorias(banco: Banco = Depends(get_banco)):
    return {"categories": [com_pai(banco, c) for c in por_nome(banco.categorias.ler())]}


@router.get("/main")
async def listar_categorias_principais(banco: Banco = Depends(get_banco)):
    return {"categories": por_nome(banco.categorias.filtrar(lambda c: not c.get("parent")))}


@router.get("/{id}")
async def obter_categoria(id: str, banco: Banco = Depends(get_banco)):
    validar_id(id)
    categoria = banco.categorias.buscar(id)
    if categoria is None:
        raise HTTPException(status_code=404, detail="Categoria não encontrada")
    return {"category": com_pai(banco, categoria)}


@router.get("/{id}/subcategories")
async def listar_subcategorias(id: str, banco: Banco = Depends(get_banco)):
    validar_id(id)
    return {"subcategories": por_nome(banco.categorias.filtrar(lambda c: c.get("parent") == id))}


@router.post("", status_code=201)
async def criar_categoria(
    dados: Categoria,
    banco: Banco = Depends(get_banco),
    atual: dict = Depends(admin_atual),
):
    if not dados.name:
        raise HTTPException(status_code=422, detail="O nome é obrigatório")

    if banco.categorias.primeiro(lambda c: c["name"] == dados.name):
        raise HTTPException(status_code=422, detail="Já existe uma categoria com este nome")

    if dados.parent and banco.categorias.buscar(dados.parent) is None:
        raise HTTPException(status_code=422, detail="Categoria pai não encontrada")

    categoria = banco.categorias.inserir({
        "name": dados.name,
        "description": dados.description,
        "parent": dados.parent or None,
    })
    logger.info(f"Categoria {categoria['name']} criada.")
    return {"message": "Categoria criada com sucesso", "category": categoria}


@router.patch("/{id}")
async def atualizar_categoria(
    id: str,
    dados: Categoria,
    banco: Banco = Depends(get_banco),
    atual: dict = Depends(admin_atual),
):
    validar_id(id)
    categoria = banco.categorias.buscar(id)
    if categoria is None:
        raise HTTPException(status_code=404, detail="Categoria não encontrada")

    if dados.name and dados.name != categoria["name"]:
        if banco.categorias.primeiro(lambda c: c["name"] == dados.name and c["id"] != id):
            raise HTTPException(status_code=422, detail="Já existe uma categoria com este nome")
        categoria["name"] = dados.name

    if "description" in dados.model_fields_set:
        categoria["description"] = dados.description

    if "parent" in dados.model_fields_set:
        if not dados.parent:
            categoria["parent"] = None
        else:
            if banco.categorias.buscar(dados.parent) is None:
                raise HTTPException(status_code=422, detail="Categoria pai não encontrada")
            if dados.parent == id:
                raise HTTPException(status_code=422, detail="Uma categoria não pode ser pai de si mesma")
            if criaria_ciclo(banco, id, dados.parent):
                raise HTTPException(
                    status_code=422,
                    detail="Esta operação criaria um ciclo na hierarquia de categorias",
                )
            categoria["parent"] = dados.parent

    categoria = banco.categorias.atualizar(categoria)
    return {"message": "Categoria atualizada com sucesso", "category": categoria}


@router.delete("/{id}")
async def excluir_categoria(
    id: str,
    banco: Banco = Depends(get_banco),
    atual: dict = Depends(admin_atual),
):
    validar_id(id)
    if banco.categorias.buscar(id) is None:
        raise HTTPException(status_code=404, detail="Categoria não encontrada")

    if banco.categorias.primeiro(lambda c: c.get("parent") == id):
        raise HTTPException(
            status_code=422,
            detail="Esta categoria possui subcategorias. Remova-as primeiro ou atualize-as para outra categoria pai.",
        )

    if banco.produtos.primeiro(lambda p: p.get("category") == id):
        raise HTTPException(
            status_code=422,
            detail="Esta categoria possui produtos associados. Remova-os ou atualize-os para outra categoria.",
        )

    banco.categorias.remover(id)
    return {"message": "Categoria removida com sucesso"}
