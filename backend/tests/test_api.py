from unittest.mock import MagicMock, patch

from dinheiros.services.auth import create_access_token


def register(client, name="Carol", email="carol@mail.com", password="secret123"):
    return client.post("/api/auth/register", json={"name": name, "email": email, "password": password})


def test_healthz(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert "X-Request-ID" in response.headers


def test_register_login_and_me(client):
    response = register(client)
    assert response.status_code == 201
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["user"]["email"] == "carol@mail.com"

    response = client.post("/api/auth/login", json={"email": "CAROL@mail.com", "password": "secret123"})
    assert response.status_code == 200
    token = response.json()["access_token"]

    response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 200
    assert response.json()["name"] == "Carol"


def test_update_name_and_password(client):
    token = register(client).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    response = client.patch("/api/auth/me", json={"name": "  Caroline "}, headers=headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Caroline"
    assert client.get("/api/auth/me", headers=headers).json()["name"] == "Caroline"
    assert client.patch("/api/auth/me", json={"name": " "}, headers=headers).status_code == 400

    response = client.patch(
        "/api/auth/me/password",
        json={"current_password": "wrong-password", "new_password": "another123"},
        headers=headers,
    )
    assert response.status_code == 401
    assert response.json() == {"error": "current password is incorrect"}

    response = client.patch(
        "/api/auth/me/password",
        json={"current_password": "secret123", "new_password": "123"},
        headers=headers,
    )
    assert response.status_code == 400

    response = client.patch(
        "/api/auth/me/password",
        json={"current_password": "secret123", "new_password": "another123"},
        headers=headers,
    )
    assert response.status_code == 200

    old = client.post("/api/auth/login", json={"email": "carol@mail.com", "password": "secret123"})
    assert old.status_code == 401
    new = client.post("/api/auth/login", json={"email": "carol@mail.com", "password": "another123"})
    assert new.status_code == 200
    assert client.patch("/api/auth/me", json={"name": "X"}).status_code == 401


def test_register_duplicate_and_bad_login(client):
    assert register(client).status_code == 201

    response = register(client)
    assert response.status_code == 400
    assert response.json() == {"error": "email already registered"}

    response = client.post("/api/auth/login", json={"email": "carol@mail.com", "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json() == {"error": "invalid credentials"}


def test_protected_routes_require_valid_token(client):
    assert client.get("/api/accounts").status_code == 401

    response = client.get("/api/accounts", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"

    # A well-formed token for a user that does not exist
    response = client.get("/api/accounts", headers={"Authorization": f"Bearer {create_access_token(424242)}"})
    assert response.status_code == 401


def test_account_lifecycle(client, auth_headers):
    response = client.post(
        "/api/accounts",
        json={"name": "Caixa", "type": "checking", "initial_balance": "250.50"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    account = response.json()
    assert account["balance"] == 250.5
    assert account["is_owner"] is True

    response = client.put(f"/api/accounts/{account['id']}", json={"name": "Caixa Econômica"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["name"] == "Caixa Econômica"

    assert client.delete(f"/api/accounts/{account['id']}", headers=auth_headers).status_code == 204
    assert client.get(f"/api/accounts/{account['id']}", headers=auth_headers).status_code == 404
    assert client.get("/api/accounts", headers=auth_headers).json() == []

    response = client.post(f"/api/accounts/{account['id']}/reactivate", headers=auth_headers)
    assert response.status_code == 204
    assert [a["id"] for a in client.get("/api/accounts", headers=auth_headers).json()] == [account["id"]]

    response = client.post("/api/accounts", json={"name": "Broker", "initial_balance": "0.001"}, headers=auth_headers)
    assert response.status_code == 422


def test_transactions_endpoints(client, auth_headers, user, make_account):
    account = make_account(user, balance="200.00")
    url = f"/api/accounts/{account.id}/transactions"

    response = client.post(
        url,
        json={"amount": "100", "type": "expense", "description": "Aluguel", "date": "2023-01-01T12:00:00Z"},
        headers=auth_headers,
    )
    assert response.status_code == 201
    txn = response.json()
    assert txn["amount"] == 100.0
    assert txn["date"].startswith("2023-01-01T12:00:00")
    assert client.get(f"/api/accounts/{account.id}", headers=auth_headers).json()["balance"] == 100.0

    response = client.post(
        url,
        json={"amount": "500", "type": "expense", "date": "2023-01-02T12:00:00Z"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json() == {"error": "insufficient funds"}

    response = client.post(url, json={"amount": "0", "type": "income", "date": "2023-01-02T12:00:00Z"},
                           headers=auth_headers)
    assert response.status_code == 422

    response = client.post(url, json={"amount": "10.005", "type": "income", "date": "2023-01-02T12:00:00Z"},
                           headers=auth_headers)
    assert response.status_code == 422
    assert client.get(f"/api/accounts/{account.id}", headers=auth_headers).json()["balance"] == 100.0

    listed = client.get(url, headers=auth_headers).json()
    assert [t["id"] for t in listed] == [txn["id"]]

    page = client.get("/api/transactions", params={"type": "expense", "description": "alug"},
                      headers=auth_headers).json()
    assert page["total"] == 1
    assert page["page"] == 1
    assert page["transactions"][0]["description"] == "Aluguel"

    assert client.delete(f"{url}/{txn['id']}", headers=auth_headers).status_code == 204
    assert client.get(f"{url}/{txn['id']}", headers=auth_headers).status_code == 404
    assert client.get(f"/api/accounts/{account.id}", headers=auth_headers).json()["balance"] == 200.0


def test_dashboard_and_statistics(client, auth_headers, user, make_account):
    make_account(user, name="Checking", balance="100.00")
    make_account(user, name="Savings", balance="23.45")

    summary = client.get("/api/dashboard/summary", headers=auth_headers).json()
    assert summary["total_balance"] == 123.45
    assert summary["recent_transactions"] == []

    response = client.get("/api/statistics/amount-by-month", headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["labels"] == []

    assert client.get("/api/statistics/nope", headers=auth_headers).status_code == 404


def test_categories_and_rules(client, auth_headers):
    response = client.post("/api/categories", json={"name": "Transporte", "type": "expense"}, headers=auth_headers)
    assert response.status_code == 201
    category_id = response.json()["id"]

    response = client.post(
        "/api/categorization-rules",
        json={"name": "Uber", "type": "regex", "value": "^UBER", "category_dst": category_id},
        headers=auth_headers,
    )
    assert response.status_code == 201
    rule_id = response.json()["id"]

    response = client.put(f"/api/categorization-rules/{rule_id}", json={"active": False}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["active"] is False

    assert client.delete(f"/api/categories/{category_id}", headers=auth_headers).status_code == 204
    assert client.get("/api/categorization-rules", headers=auth_headers).json() == []


def test_account_sharing(client, auth_headers, user, make_user, make_account):
    bob = make_user(name="Bob", email="bob@mail.com")
    account = make_account(user, name="Family")
    bob_headers = {"Authorization": f"Bearer {create_access_token(bob.id)}"}

    response = client.post(f"/api/accounts/{account.id}/shares", json={"email": "bob@mail.com"}, headers=auth_headers)
    assert response.status_code == 201
    share = response.json()
    assert share["shared_user_email"] == "bob@mail.com"

    shared = client.get("/api/accounts", headers=bob_headers).json()
    assert [(a["id"], a["is_owner"], a["owner_name"]) for a in shared] == [(account.id, False, "Alice")]

    response = client.delete(f"/api/accounts/{account.id}", headers=bob_headers)
    assert response.status_code == 403

    response = client.delete(f"/api/accounts/{account.id}/shares/{share['id']}", headers=auth_headers)
    assert response.status_code == 204
    assert client.get("/api/accounts", headers=bob_headers).json() == []


def test_list_extractors(client, auth_headers):
    response = client.get("/api/import/extractors", headers=auth_headers)
    assert response.status_code == 200
    assert [e["name"] for e in response.json()] == [
        "caixa_extrato", "caixa_cc_fatura", "nubank_extrato", "nubank_cc_fatura",
    ]


def test_import_pdf_and_post_reviewed_transactions(client, auth_headers, user, make_account):
    account = make_account(user, balance="0.00")
    page = MagicMock()
    page.extract_text.return_value = "01/08/2024\n011245\nTEDSALARIO\n5.112,83 C\n5.112,83 C"
    pdf = MagicMock()
    pdf.pages = [page]

    with patch("dinheiros.services.pdf_extractors.base.pdfplumber") as mock_pdfplumber:
        mock_pdfplumber.open.return_value = pdf
        response = client.post(
            f"/api/accounts/{account.id}/import/pdf",
            files={"file": ("extrato.pdf", b"%PDF-1.4 fake", "application/pdf")},
            data={"extractor": "caixa_extrato"},
            headers=auth_headers,
        )

    assert response.status_code == 200
    extracted = response.json()
    assert len(extracted) == 1
    assert extracted[0]["amount"] == 5112.83
    assert extracted[0]["type"] == "income"
    assert extracted[0]["date"].startswith("2024-08-01")

    response = client.post(
        f"/api/accounts/{account.id}/import/transactions",
        json={"transactions": [{
            "amount": "5112.83",
            "type": extracted[0]["type"],
            "description": extracted[0]["description"],
            "date": extracted[0]["date"],
        }]},
        headers=auth_headers,
    )
    assert response.status_code == 201
    assert client.get(f"/api/accounts/{account.id}", headers=auth_headers).json()["balance"] == 5112.83


def test_import_pdf_errors(client, auth_headers, user, make_account):
    account = make_account(user)
    url = f"/api/accounts/{account.id}/import/pdf"

    response = client.post(url, files={"file": ("empty.pdf", b"", "application/pdf")}, headers=auth_headers)
    assert response.status_code == 400

    response = client.post(
        url,
        files={"file": ("x.pdf", b"%PDF", "application/pdf")},
        data={"extractor": "itau_extrato"},
        headers=auth_headers,
    )
    assert response.status_code == 400
    assert response.json() == {"error": "invalid extractor: itau_extrato"}
