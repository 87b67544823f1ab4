import logging
import re
from typing import Optional

import jwt
from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile

from miniaturas.armazenamento import Banco
from miniaturas.config import Settings
from miniaturas.dependencias import admin_atual, get_banco, get_config, usuario_atual, validar_id
from miniaturas.imagens import PASTA_USUARIOS, salvar_imagem
from miniaturas.metodos_pagamento import mascarar_metodo
from miniaturas.models import EdicaoUsuario, Login, RegistroUsuario, TrocaSenha
from miniaturas.seguranca import (
    decodificar_token,
    extrair_token,
    gerar_hash_senha,
    resposta_autenticacao,
    verificar_senha,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["usuarios"])

EMAIL_REGEX = re.compile(r'^[\w.-]+@[\w-]+(\.[\w-]+)*\.\w{2,}$')


def usuario_publico(usuario: dict) -> dict:
    publico = {chave: valor for chave, valor in usuario.items() if chave != "password"}
    publico["payment_methods"] = [mascarar_metodo(m) for m in usuario.get("payment_methods", [])]
    return publico


def normalizar_email(email: str) -> str:
    email = email.strip().lower()
    if not EMAIL_REGEX.match(email):
        raise HTTPException(status_code=422, detail="Por favor, insira um email válido")
    return email


def criar_usuario(banco: Banco, settings: Settings, dados: RegistroUsuario, admin: bool = False) -> dict:
    # Validações
    if not dados.name:
        raise HTTPException(status_code=422, detail="O nome é obrigatório")
    if not dados.email:
        raise HTTPException(status_code=422, detail="O email é obrigatório")
    if not dados.phone:
        raise HTTPException(status_code=422, detail="O telefone é obrigatório")
    if not dados.cpf:
        raise HTTPException(status_code=422, detail="O CPF é obrigatório")
    if not dados.password:
        raise HTTPException(status_code=422, detail="A senha é obrigatória")

    email = normalizar_email(dados.email)

    if banco.usuarios.primeiro(lambda u: u["email"] == email):
        raise HTTPException(status_code=422, detail="Email já cadastrado, utilize outro email")
    if banco.usuarios.primeiro(lambda u: u["cpf"] == dados.cpf):
        raise HTTPException(status_code=422, detail="CPF já cadastrado")

    usuario = banco.usuarios.inserir({
        "name": dados.name,
        "email": email,
        "phone": dados.phone,
        "cpf": dados.cpf,
        "password": gerar_hash_senha(dados.password, settings.bcrypt_rounds),
        "image": None,
        "admin": admin,
        "addresses": [],
        "payment_methods": [],
    })
    logger.info(f"Usuário {usuario['id']} registrado (admin={admin}).")
    return usuario


def garantir_admin_inicial(banco: Banco, settings: Settings) -> Optional[dict]:
    """Cria o administrador configurado em MINIATURAS_ADMIN_EMAIL, se ainda não existir."""
    if not settings.admin_email or not settings.admin_password:
        return None

    email = settings.admin_email.strip().lower()
    existente = banco.usuarios.primeiro(lambda u: u["email"] == email)
    if existente:
        return existente

    usuario = banco.usuarios.inserir({
        "name": settings.admin_name,
        "email": email,
        "phone": "",
        "cpf": "",
        "password": gerar_hash_senha(settings.admin_password, settings.bcrypt_rounds),
        "image": None,
        "admin": True,
        "addresses": [],
        "payment_methods": [],
    })
    logger.info(f"Administrador inicial {email} criado.")
    return usuario


def editar_usuario(banco: Banco, settings: Settings, usuario_id: str, atual: dict,
                   dados: EdicaoUsuario, imagem: Optional[str] = None) -> dict:
    usuario = banco.usuarios.buscar(usuario_id)
    if usuario is None:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")

    # Apenas o próprio usuário ou um administrador
    if usuario_id != atual["id"] and not atual.get("admin"):
        raise HTTPException(status_code=401, detail="Acesso negado")

    if dados.name:
        usuario["name"] = dados.name

    if dados.email:
        email = normalizar_email(dados.email)
        if email != usuario["email"]:
            if banco.usuarios.primeiro(lambda u: u["email"] == email and u["id"] != usuario_id):
                raise HTTPException(status_code=422, detail="Email já está em uso")
            usuario["email"] = email

    if dados.phone:
        usuario["phone"] = dados.phone

    if dados.cpf and dados.cpf != usuario["cpf"]:
        if banco.usuarios.primeiro(lambda u: u["cpf"] == dados.cpf and u["id"] != usuario_id):
            raise HTTPException(status_code=422, detail="CPF já está em uso")
        usuario["cpf"] = dados.cpf

    if imagem:
        usuario["image"] = imagem

    if dados.password:
        if not dados.confirm_password:
            raise HTTPException(status_code=422, detail="A confirmação de senha é obrigatória")
        if dados.password != dados.confirm_password:
            raise HTTPException(status_code=422, detail="A senha e a confirmação precisam ser iguais")
        usuario["password"] = gerar_hash_senha(dados.password, settings.bcrypt_rounds)

    return banco.usuarios.atualizar(usuario)


###################################################################

@router.post("/register", status_code=201)
def registrar(
    dados: RegistroUsuario,
    banco: Banco = Depends(get_banco),
    settings: Settings = Depends(get_config),
):
    usuario = criar_usuario(banco, settings, dados)
    return resposta_autenticacao(usuario, settings)


@router.post("/admin/register", status_code=201)
def registrar_admin(
    dados: RegistroUsuario,
    banco: Banco = Depends(get_banco),
    settings: Settings = Depends(get_config),
    atual: dict = Depends(admin_atual),
):
    usuario = criar_usuario(banco, settings, dados, admin=True)
    return {"message": "Administrador cadastrado com sucesso", "user": usuario_publico(usuario)}


@router.post("/login")
def login(
    dados: Login,
    banco: Banco = Depends(get_banco),
    settings: Settings = Depends(get_config),
):
    if not dados.email:
        raise HTTPException(status_code=422, detail="O email é obrigatório")
    if not dados.password:
        raise HTTPException(status_code=422, detail="A senha é obrigatória")

    email = dados.email.strip().lower()
    usuario = banco.usuarios.primeiro(lambda u: u["email"] == email)
    if usuario is None:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")

    if not verificar_senha(dados.password, usuario["password"]):
        raise HTTPException(status_code=422, detail="Senha inválida")

    return resposta_autenticacao(usuario, settings)


@router.get("/check")
@router.get("/checkuser")
async def verificar_usuario(
    request: Request,
    banco: Banco = Depends(get_banco),
    settings: Settings = Depends(get_config),
):
    # Sempre 200: usuário atual ou null
    token = extrair_token(request.headers.get("Authorization"))
    if not token:
        return None

    try:
        payload = decodificar_token(token, settings)
    except jwt.PyJWTError as e:
        logger.info(f"Erro na verificação do JWT: {e}")
        return None

    usuario = banco.usuarios.buscar(payload.get("id"))
    return usuario_publico(usuario) if usuario else None


@router.patch("/edit")
def editar_perfil(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    phone: Optional[str] = Form(None),
    cpf: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    confirm_password: Optional[str] = Form(None, alias="confirmPassword"),
    image: Optional[UploadFile] = File(None),
    banco: Banco = Depends(get_banco),
    settings: Settings = Depends(get_config),
    atual: dict = Depends(usuario_atual),
):
    dados = EdicaoUsuario(
        name=name, email=email, phone=phone, cpf=cpf,
        password=password, confirm_password=confirm_password,
    )
    imagem = salvar_imagem(image, PASTA_USUARIOS, settings) if image and image.filename else None
    editar_usuario(banco, settings, atual["id"], atual, dados, imagem)
    return {"message": "Usuário atualizado com sucesso"}


@router.get("")
async def listar_usuarios(
    banco: Banco = Depends(get_banco),
    atual: dict = Depends(admin_atual),
):
    return {"users": [usuario_publico(u) for u in banco.usuarios.ler()]}


@router.get("/{id}")
async def obter_usuario(
    id: str,
    banco: Banco = Depends(get_banco),
    atual: dict = Depends(usuario_atual),
):
    validar_id(id)
    usuario = banco.usuarios.buscar(id)
    if usuario is None:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")
    return {"user": usuario_publico(usuario)}


@router.put("/{id}")
def atualizar_usuario(
    id: str,
    dados: EdicaoUsuario,
    banco: Banco = Depends(get_banco),
    settings: Settings = Depends(get_config),
    atual: dict = Depends(usuario_atual),
):
    validar_id(id)
    editar_usuario(banco, settings, id, atual, dados)
    return {"message": "Usuário atualizado com sucesso"}


@router.put("/{id}/change-password")
def trocar_senha(
    id: str,
    dados: TrocaSenha,
    banco: Banco = Depends(get_banco),
    settings: Settings = Depends(get_config),
    atual: dict = Depends(usuario_atual),
):
    if not dados.current_password:
        raise HTTPException(status_code=422, detail="A senha atual é obrigatória")
    if not dados.new_password:
        raise HTTPException(status_code=422, detail="A nova senha é obrigatória")

    validar_id(id)
    usuario = banco.usuarios.buscar(id)
    if usuario is None:
        raise HTTPException(status_code=404, detail="Usuário não encontrado")

    if id != atual["id"] and not atual.get("admin"):
        raise HTTPException(status_code=401, detail="Acesso negado")

    if not verificar_senha(dados.current_password, usuario["password"]):
        raise HTTPException(status_code=422, detail="Senha atual incorreta")

    usuario["password"] = gerar_hash_senha(dados.new_password, settings.bcrypt_rounds)
    banco.usuarios.atualizar(usuario)
    return {"message": "Senha alterada com sucesso"}


@router.delete("/{id}")
async def excluir_usuario(
    id: str,
    banco: Banco = Depends(get_banco),
    atual: dict = Depends(admin_atual),
):
    validar_id(id)
    if not banco.usuarios.remover(id):
        raise HTTPException(status_code=404, detail="Usuário não encontrado")

    removidos = banco.carrinho.remover_onde(lambda item: item["user_id"] == id)
    logger.info(f"Usuário {id} removido ({removidos} itens de carrinho descartados).")
    return {"message": "Usuário removido com sucesso"}
