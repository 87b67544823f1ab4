# Modelos de entrada da API. Os campos aceitam snake_case ou o camelCase
# usado pelo frontend (productId, zipCode, isDefault...).
from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

TIPOS_PRODUTO = ['car', 'helmet', 'merchandise', 'formula1']
TIPOS_PAGAMENTO = ['credit', 'debit', 'pix', 'bankslip']
STATUS_PEDIDO = ['pending', 'approved', 'refused', 'shipped', 'delivered', 'cancelled']


class Entrada(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Modelo de Usuário
class RegistroUsuario(Entrada):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    cpf: Optional[str] = None
    password: Optional[str] = None


class Login(Entrada):
    email: Optional[str] = None
    password: Optional[str] = None


class EdicaoUsuario(Entrada):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    cpf: Optional[str] = None
    password: Optional[str] = None
    confirm_password: Optional[str] = None


class TrocaSenha(Entrada):
    current_password: Optional[str] = None
    new_password: Optional[str] = None


class Endereco(Entrada):
    street: Optional[str] = None
    number: Optional[str] = None
    complement: Optional[str] = None
    neighborhood: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    is_default: Optional[bool] = None


class MetodoPagamento(Entrada):
    type: Optional[str] = None
    card_number: Optional[str] = None
    card_holder_name: Optional[str] = None
    expiration_date: Optional[str] = None
    cvv: Optional[str] = None
    is_default: Optional[bool] = None


# Modelo do Carrinho
class ItemCarrinho(Entrada):
    product_id: str
    quantity: int = 1


class AtualizacaoCarrinho(Entrada):
    quantity: int


class MesclaCarrinho(Entrada):
    items: List[ItemCarrinho] = []


# Modelo de Pedido
class NovoPedido(Entrada):
    address_id: Optional[str] = None
    payment_method_id: Optional[str] = None


class StatusPedido(Entrada):
    status: str


class Categoria(Entrada):
    name: Optional[str] = None
    description: Optional[str] = None
    parent: Optional[str] = None


class RemocaoImagem(Entrada):
    filename: Optional[str] = None


class ModeloProduto(Entrada):
    size: Optional[str] = None
    color: Optional[str] = None
    quantity: Optional[int] = None
