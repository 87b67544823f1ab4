import pytest
from fastapi.testclient import TestClient

from miniaturas.api import criar_app
from miniaturas.config import Settings

ADMIN_EMAIL = "admin@loja.com"
ADMIN_SENHA = "admin123"

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


class PublicadorFalso:
    """Guarda os eventos em memória no lugar do RabbitMQ."""

    def __init__(self):
        self.eventos = []

    def enviar_evento(self, evento, routing_key):
        self.eventos.append((routing_key, evento))
        return True


@pytest.fixture
def settings(tmp_path):
    return Settings(
        data_dir=tmp_path / "data",
        images_dir=tmp_path / "images",
        bcrypt_rounds=4,
        rabbitmq_host=None,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_SENHA,
    )


@pytest.fixture
def app(settings):
    app = criar_app(settings)
    app.state.publicador = PublicadorFalso()
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        yield client


@pytest.fixture
def banco(app):
    return app.state.banco


@pytest.fixture
def publicador(app):
    return app.state.publicador


def auth(token):
    return {"Authorization": f"Bearer {token}"}


def registrar(client, email="piloto@loja.com", cpf="12345678900", **extra):
    body = {
        "name": "Piloto",
        "email": email,
        "phone": "11999999999",
        "cpf": cpf,
        "password": "senha123",
        **extra,
    }
    return client.post("/api/users/register", json=body)


@pytest.fixture
def admin_headers(client):
    resp = client.post("/api/users/login", json={"email": ADMIN_EMAIL, "password": ADMIN_SENHA})
    assert resp.status_code == 200, resp.text
    return auth(resp.json()["token"])


@pytest.fixture
def user(client):
    resp = registrar(client)
    assert resp.status_code == 201, resp.text
    data = resp.json()
    return {"id": data["userId"], "headers": auth(data["token"])}


@pytest.fixture
def user_headers(user):
    return user["headers"]


@pytest.fixture
def outro_usuario(client):
    resp = registrar(client, email="rival@loja.com", cpf="98765432100")
    assert resp.status_code == 201, resp.text
    data = resp.json()
    return {"id": data["userId"], "headers": auth(data["token"])}


@pytest.fixture
def categoria(client, admin_headers):
    resp = client.post(
        "/api/categories",
        json={"name": "Escala 1:18", "description": "Miniaturas grandes"},
        headers=admin_headers,
    )
    assert resp.status_code == 201, resp.text
    return resp.json()["category"]


@pytest.fixture
def criar_produto(client, admin_headers, categoria):
    def _criar(name="SF90 Stradale", price="899.90", type="car", stock="10", **extra):
        data = {
            "name": name,
            "price": price,
            "description": "Miniatura detalhada",
            "category": categoria["id"],
            "type": type,
            "stock": stock,
            **extra,
        }
        resp = client.post(
            "/api/products",
            data=data,
            files=[("images", ("frente.png", PNG, "image/png"))],
            headers=admin_headers,
        )
        assert resp.status_code == 201, resp.text
        return resp.json()["product"]

    return _criar


@pytest.fixture
def checkout_pronto(client, user_headers):
    """Usuário com endereço e método de pagamento cadastrados."""
    endereco = client.post(
        "/api/users/addresses",
        json={
            "street": "Via Abetone Inferiore",
            "number": "4",
            "neighborhood": "Centro",
            "city": "Maranello",
            "state": "MO",
            "zipCode": "41053",
        },
        headers=user_headers,
    ).json()["address"]
    metodo = client.post(
        "/api/users/payment-methods",
        json={"type": "pix"},
        headers=user_headers,
    ).json()["paymentMethod"]
    return {"addressId": endereco["id"], "paymentMethodId": metodo["id"]}
