ENDERECO = {
    "street": "Via Abetone Inferiore",
    "number": "4",
    "neighborhood": "Centro",
    "city": "Maranello",
    "state": "MO",
    "zipCode": "41053",
}

CARTAO = {
    "type": "credit",
    "cardNumber": "4111111111111111",
    "cardHolderName": "CHARLES LECLERC",
    "expirationDate": "12/30",
    "cvv": "123",
}


def test_endereco_campos_obrigatorios(client, user_headers):
    resp = client.post("/api/users/addresses", json={**ENDERECO, "zipCode": None}, headers=user_headers)
    assert resp.status_code == 422
    assert resp.json()["detail"] == "O CEP é obrigatório"


def test_primeiro_endereco_e_padrao(client, user_headers):
    primeiro = client.post("/api/users/addresses", json=ENDERECO, headers=user_headers).json()["address"]
    assert primeiro["is_default"] is True

    segundo = client.post(
        "/api/users/addresses", json={**ENDERECO, "number": "10", "isDefault": True}, headers=user_headers
    ).json()["address"]
    enderecos = client.get("/api/users/addresses", headers=user_headers).json()["addresses"]
    assert [e["is_default"] for e in enderecos] == [False, True]

    client.delete(f"/api/users/addresses/{segundo['id']}", headers=user_headers)
    enderecos = client.get("/api/users/addresses", headers=user_headers).json()["addresses"]
    assert [(e["id"], e["is_default"]) for e in enderecos] == [(primeiro["id"], True)]


def test_atualizar_endereco(client, user_headers):
    endereco = client.post("/api/users/addresses", json=ENDERECO, headers=user_headers).json()["address"]
    resp = client.patch(
        f"/api/users/addresses/{endereco['id']}",
        json={"city": "Modena", "complement": "Casa"},
        headers=user_headers,
    )
    assert resp.json()["address"]["city"] == "Modena"
    assert resp.json()["address"]["complement"] == "Casa"
    assert resp.json()["address"]["street"] == ENDERECO["street"]

    assert client.patch("/api/users/addresses/nada", json={}, headers=user_headers).status_code == 404


def test_rota_legada_de_endereco_unico(client, user_headers):
    resp = client.patch("/api/users/address", json=ENDERECO, headers=user_headers)
    assert resp.json()["address"]["is_default"] is True

    resp = client.patch("/api/users/address", json={"number": "99"}, headers=user_headers)
    assert resp.json()["address"]["number"] == "99"
    assert len(client.get("/api/users/addresses", headers=user_headers).json()["addresses"]) == 1


def test_cartao_exige_dados_e_e_mascarado(client, user_headers):
    resp = client.post("/api/users/payment-methods", json={"type": "credit"}, headers=user_headers)
    assert resp.json()["detail"] == "Para cartões, todos os campos de cartão são obrigatórios"

    resp = client.post("/api/users/payment-methods", json=CARTAO, headers=user_headers)
    assert resp.status_code == 201
    metodo = resp.json()["paymentMethod"]
    assert metodo["card_number"] == "**** **** **** 1111"
    assert "cvv" not in metodo
    assert metodo["is_default"] is True


def test_tipo_de_pagamento_invalido(client, user_headers):
    resp = client.post("/api/users/payment-methods", json={"type": "cheque"}, headers=user_headers)
    assert resp.json()["detail"] == "Tipo de pagamento inválido"
    resp = client.post("/api/users/payment-methods", json={}, headers=user_headers)
    assert resp.json()["detail"] == "O tipo de pagamento é obrigatório"


def test_metodo_padrao_e_remocao(client, user_headers):
    pix = client.post("/api/users/payment-methods", json={"type": "pix"}, headers=user_headers).json()
    boleto = client.post(
        "/api/users/payment-methods", json={"type": "bankslip", "isDefault": True}, headers=user_headers
    ).json()

    metodos = client.get("/api/users/payment-methods", headers=user_headers).json()["paymentMethods"]
    assert [m["is_default"] for m in metodos] == [False, True]

    client.delete(f"/api/users/payment-methods/{boleto['paymentMethod']['id']}", headers=user_headers)
    metodos = client.get("/api/users/payment-methods", headers=user_headers).json()["paymentMethods"]
    assert [(m["id"], m["is_default"]) for m in metodos] == [(pix["paymentMethod"]["id"], True)]


def test_atualizar_metodo(client, user_headers):
    metodo = client.post("/api/users/payment-methods", json=CARTAO, headers=user_headers).json()["paymentMethod"]
    url = f"/api/users/payment-methods/{metodo['id']}"

    resp = client.patch(url, json={"cardNumber": "5555444433332222"}, headers=user_headers)
    assert resp.json()["paymentMethod"]["card_number"].endswith("2222")

    resp = client.patch(url, json={"type": "pix"}, headers=user_headers)
    assert "card_number" not in resp.json()["paymentMethod"]

    resp = client.patch(url, json={"type": "debit"}, headers=user_headers)
    assert resp.status_code == 422


def test_usuario_publico_nao_expoe_cartao(client, user, user_headers):
    client.post("/api/users/payment-methods", json=CARTAO, headers=user_headers)
    dados = client.get(f"/api/users/{user['id']}", headers=user_headers).json()["user"]
    assert dados["payment_methods"][0]["card_number"] == "**** **** **** 1111"
    assert "cvv" not in dados["payment_methods"][0]
